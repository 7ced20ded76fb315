#!/usr/bin/env python3
"""Example: Run the stock monitor with settings from the environment.

This script shows how to wire stockwatch end to end:
1. Loads settings from environment variables / .env
2. Fetches the current stock from the stock API
3. Diffs it against the last stored snapshot
4. Stores the snapshot and any changes
5. Posts material changes to the configured channels
"""

import json

from stockwatch.config import configure_logging, load_settings
from stockwatch.monitor import build_monitor


def run(once: bool = False):
    """Run one cycle (printing the result) or loop forever.

    Args:
        once: If True, run a single cycle and print its summary
    """
    settings = load_settings()
    configure_logging(settings.log_level)

    monitor = build_monitor(settings)
    try:
        if once:
            result = monitor.run_cycle()
            print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
        else:
            monitor.run_forever()
    finally:
        monitor.close()


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 2 or (len(sys.argv) == 2 and sys.argv[1] != "--once"):
        print("Usage: python run_monitor.py [--once]")
        print("\nEnvironment:")
        print("  STOCKWATCH_DB_URL     PostgreSQL URL (in-memory history if unset)")
        print("  STOCKWATCH_DB_HOST    ...or HOST/PORT/NAME/USER/PASSWORD parts")
        print("  DISCORD_WEBHOOK_URL   Discord webhook for change announcements")
        sys.exit(1)

    run(once=len(sys.argv) == 2)
