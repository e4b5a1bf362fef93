"""
Module entry point.

Usage:
    python -m mbwatch run        # Sync every account once
    python -m mbwatch service    # Run service with scheduler
"""

from mbwatch.cli import main

if __name__ == "__main__":
    main()
