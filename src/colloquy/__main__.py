"""Entry point for `python -m colloquy` command."""

import sys

from colloquy.cli.__main__ import main

if __name__ == "__main__":
    sys.exit(main())
