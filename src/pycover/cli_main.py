"""Main CLI entry point for pycover."""

import sys

from pycover.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
