#!/usr/bin/env python3
"""
Main entry point for the Islandora REST ingester.

This is a convenience wrapper that can be run directly:
    python main.py <input_dir> -p <parent> -o <owner> [-m <cmodel>] [-n <namespace>]

Or via uv:
    uv run main.py <input_dir> -p <parent> -o <owner>

For more information, run:
    python main.py --help
"""

import sys

from islandora_ingest.cli.ingest import main as cli_main

if __name__ == "__main__":
    sys.exit(cli_main())
