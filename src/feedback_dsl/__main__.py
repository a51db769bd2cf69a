"""
Feedback DSL entry point.

Run with: python -m feedback_dsl [options] {render,validate,variables} ...
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
