"""Entry point for ``python -m lsprig.fixture``."""

import sys

from lsprig.cli import run

if __name__ == "__main__":
    sys.exit(run())
