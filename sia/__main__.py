"""Entry point for the Sia CLI.

This module serves as the main entry point when running the sia package directly.
"""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
