"""Argument parser construction for foundryup-init.

Only the installer's own flags are defined here. Everything else on the
command line is collected by ``parse_known_args`` and forwarded, in order,
to the installed foundryup.
"""

from __future__ import annotations

import argparse

EPILOG = """\
All other options are passed to foundryup after installation.

Environment variables:
  FOUNDRYUP_VERSION               Install a specific version of foundryup
  FOUNDRYUP_IGNORE_VERIFICATION   Skip attestation verification (same as --force)
  FOUNDRY_DIR                     Installation root (default: ~/.foundry)
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="foundryup-init",
        description="The installer for foundryup.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output.",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Disable progress output.",
    )
    parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip confirmation prompt.",
    )
    parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Skip SHA verification of the downloaded binary (INSECURE).",
    )
    parser.add_argument(
        "--help", "-h",
        action="store_true",
        help="Print help.",
    )
    parser.add_argument(
        "--version", "-V",
        action="store_true",
        help="Print version.",
    )
    return parser
