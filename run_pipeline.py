#!/usr/bin/env python
"""
Silver Layer Load Entry Point

Usage:
    Full load:        python run_pipeline.py
    Subset:           python run_pipeline.py --entities products suppliers
    Fixed date:       python run_pipeline.py --processing-date 2024-01-31
    Create tables:    python run_pipeline.py --init-db

    Or, once installed:
    retail-silver-load --log-format console
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from retail_silver.main import main  # noqa: E402


if __name__ == "__main__":
    sys.exit(main())
