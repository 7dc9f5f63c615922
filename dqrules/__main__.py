"""CLI entry point for dqrules.

Enables invocation via ``python -m dqrules``.
"""

import sys

from dqrules.cli.app import app

if __name__ == "__main__":
    exit_code = app()
    sys.exit(exit_code if exit_code is not None else 0)
