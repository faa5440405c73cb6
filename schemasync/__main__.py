# File: schemasync/__main__.py
"""
SchemaSync — Module entry point.

Allows running the sync directly via::

    python -m schemasync dev ./database

This module simply delegates to the CLI entry point defined in ``schemasync.cli``.
"""

from __future__ import annotations

import sys


def main() -> None:
    """Delegate to the CLI main function."""
    from schemasync.cli import main as cli_main
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
