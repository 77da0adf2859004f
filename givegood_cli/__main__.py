"""
Module execution entry point.

Allows running with: python -m givegood_cli
"""

import sys
from givegood_cli.main import main

if __name__ == "__main__":
    sys.exit(main())
