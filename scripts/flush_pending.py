#!/usr/bin/env python3
"""
Flush Pending Voicemails — one on-demand pass over the pending queue.

Useful from cron when the web process runs with the flusher disabled.

Usage:
    python scripts/flush_pending.py
    python scripts/flush_pending.py --config config/settings.yaml --json
"""
import asyncio
import json
import os
import sys
import argparse

# Ensure app root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


async def run_flush(config_path: str = None) -> dict:
    from dotenv import load_dotenv
    load_dotenv()

    from config.settings import load_settings
    from core.services import build_services

    services = build_services(load_settings(config_path))
    await services.start()
    try:
        return await services.flusher.flush_pending()
    finally:
        await services.close()


def main():
    parser = argparse.ArgumentParser(description="Retry delivery of pending voicemails")
    parser.add_argument("--config", default=None, help="Path to settings YAML")
    parser.add_argument("--json", action="store_true", help="Print stats as JSON")
    args = parser.parse_args()

    stats = asyncio.run(run_flush(args.config))
    if args.json:
        print(json.dumps(stats))
    else:
        print(f"Scanned:   {stats['scanned']}")
        print(f"Delivered: {stats['delivered']}")
        print(f"Failed:    {stats['failed']}")
        print(f"Errors:    {stats['errors']}")


if __name__ == "__main__":
    main()
