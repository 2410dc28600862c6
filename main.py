#!/usr/bin/env python3
"""Launcher for the mediascout command line interface."""

import os
import sys
import pathlib


def resource_path(relative_path):
    """Get absolute path to resource, works for dev and for PyInstaller."""
    if hasattr(sys, "_MEIPASS"):
        base = pathlib.Path(sys._MEIPASS)
    else:
        base = pathlib.Path(__file__).parent
    return str(base / relative_path)


def setup_playwright_browsers():
    """Point Playwright at bundled browsers when they ship next to the launcher."""
    browsers_path = resource_path("pw-browsers")
    if os.path.isdir(browsers_path):
        os.environ.setdefault("PLAYWRIGHT_BROWSERS_PATH", browsers_path)


def main():
    setup_playwright_browsers()

    # Import after setting up environment
    from mediascout.cli import main as run_cli
    run_cli()


if __name__ == "__main__":
    main()
