"""Package entry point for running the tag extractor as a module.

This allows running the extractor with:
    python -m tag_extractor
"""
import sys

from tag_extractor.main import main

if __name__ == "__main__":
    sys.exit(main())
