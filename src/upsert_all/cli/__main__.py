"""
CLI entry point for upsert-all.

Usage:
    python -m upsert_all.cli upsert --table users --unique-by email --input users.json
"""

import sys

from .main import main

if __name__ == "__main__":
    sys.exit(main())
