#!/usr/bin/env python3
"""
Entry point wrapper for the validation command line.

Uses absolute imports so it can also serve as a PyInstaller entry point.
"""

import sys
import os

# Ensure the judge package can be imported
if getattr(sys, 'frozen', False):
    bundle_dir = sys._MEIPASS
else:
    bundle_dir = os.path.dirname(os.path.abspath(__file__))

sys.path.insert(0, bundle_dir)

if __name__ == "__main__":
    from judge.cli import main
    sys.exit(main())
