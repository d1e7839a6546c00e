"""Run the one-time session cut-over from Redis into SQLite.

Usage:
    uv run python scripts/migrate_sessions.py --redis-url redis://localhost:6379/0 \\
        --sqlite-path ./sessions.db --dry-run

Safe to re-run after an interruption: sessions that already reached the
database are reported as duplicates and left as they are.
"""

import sys

from session_cutover.cli import main

if __name__ == "__main__":
    sys.exit(main())
