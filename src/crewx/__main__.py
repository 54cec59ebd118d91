"""Entry point for ``python -m crewx``."""

import sys

from crewx.cli import main

if __name__ == "__main__":
    sys.exit(main())
