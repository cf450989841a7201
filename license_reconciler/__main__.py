"""
Allow running the reconciler CLI as a Python module.

Usage:
    python -m license_reconciler apply --declaration license.yaml
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
