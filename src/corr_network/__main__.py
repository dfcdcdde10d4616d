"""
Main entry point for running as module.

Usage: python -m corr_network [command] [options]
"""

import sys

from .cli import main

if __name__ == '__main__':
    sys.exit(main())
