import sys

from foundryup_init.cli import main

if __name__ == "__main__":
    sys.exit(main())
