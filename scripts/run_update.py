#!/usr/bin/env python3
"""
Run the knowledge update outside the server: once, or as a foreground loop.
"""

import argparse
import sys
from pathlib import Path

# Add the repository root to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from knowledge_server.core.config import ensure_store_directory, validate_config
from knowledge_server.core.store import KnowledgeStore, KnowledgeStoreError
from knowledge_server.core.updater import UpdateScheduler


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Refresh the knowledge store from upstream releases")
    parser.add_argument("--loop", action="store_true", help="Keep running on the configured interval")
    args = parser.parse_args(argv)

    issues = validate_config()
    if issues:
        print(f"❌ Configuration invalid: {issues}")
        return 1

    ensure_store_directory()
    try:
        store = KnowledgeStore.from_config()
    except KnowledgeStoreError as e:
        print(f"💥 {e}")
        return 1

    scheduler = UpdateScheduler(store)

    if not args.loop:
        result = scheduler.run_cycle()
        print(f"🏁 Update cycle {result}: {store.snapshot()}")
        return 0

    print(f"🚀 Updating every {scheduler.interval_sec}s (Ctrl+C to stop)")
    scheduler.start()
    try:
        while scheduler.running:
            scheduler.join(1.0)
    except KeyboardInterrupt:
        print("\n🛑 Shutting down gracefully...")
    finally:
        scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
