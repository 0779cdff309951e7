"""
Entry point for running the compositor as a module.

Usage:
    python -m node_compositor
"""

import sys

from node_compositor.main import main

if __name__ == "__main__":
    sys.exit(main())
