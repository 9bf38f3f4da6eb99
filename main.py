#!/usr/bin/env python3
"""
Main entry point for the site crawler.
"""

import sys

from sitecrawl.app import main


if __name__ == '__main__':
    sys.exit(main())
