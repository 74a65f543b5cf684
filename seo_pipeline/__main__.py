"""
Entry point for `python -m seo_pipeline`.
"""

import sys

from seo_pipeline.cli import main

sys.exit(main())
