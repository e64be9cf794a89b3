"""Run the command line interface: python -m passtoken."""

import sys

from passtoken.cli import main

if __name__ == "__main__":
    sys.exit(main())
