"""
Main entry point for running the package as a module.

Usage:
    python -m imgopt process --input assets/img
    python -m imgopt process --input assets/img --force
    python -m imgopt serve --input assets/img --port 8080
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
