"""Entry point for the Bibliotech catalog jobs."""

import sys

from bibliotech.cli import main

if __name__ == "__main__":
    sys.exit(main())
