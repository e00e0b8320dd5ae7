"""
Entry point for running aleph as a module.

Usage:
    python -m src.delivery drill
    python -m src.delivery stats
    python -m src.delivery --help
"""
from .drill_cli import main

if __name__ == "__main__":
    main()
