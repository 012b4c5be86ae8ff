"""Package entry point.

Enables running the project with:

    python -m savesync ...
"""

from __future__ import annotations

import sys

from savesync.cli import main

if __name__ == "__main__":
    sys.exit(main())
