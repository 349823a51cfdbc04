#!/usr/bin/env python
"""Entry point script for running the tag extractor.

This script allows running the extractor directly without installing the package.
"""
import sys

from tag_extractor.main import main

if __name__ == "__main__":
    sys.exit(main())
