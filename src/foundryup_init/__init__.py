"""foundryup-init: the installer for foundryup, the Foundry toolchain manager."""

__version__ = "2.0.0"
