#!/usr/bin/env python3
"""Convenience runner for the FIT merge tool.

Usage:
    python run.py merge master.fit overlay.fit -o merged.fit
"""
import sys

from fit_fusion.main import main

if __name__ == "__main__":
    sys.exit(main())
