#!/usr/bin/env python3
"""
main.py — Quick-start entry point.

    python main.py plan caps.json photo.jpg
    python main.py generate caps.json photo.jpg --packing hex

Or use the full CLI:

    python -m cap_mosaic.cli generate --help
"""

from cap_mosaic.cli import app

if __name__ == "__main__":
    app()
