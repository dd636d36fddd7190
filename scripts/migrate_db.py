#!/usr/bin/env python3
"""
Database Migration — Create the identity and pending-voicemail tables.

Usage:
    # Local:
    python scripts/migrate_db.py

    # Check status only (no changes):
    python scripts/migrate_db.py --check
"""
import asyncio
import os
import sys
import argparse

# Ensure app root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


async def run_migration(check_only: bool = False, config_path: str = None):
    from sqlalchemy import inspect

    from config.settings import load_settings
    from database.models import Base
    from database.session import create_engine, init_db

    settings = load_settings(config_path)
    engine = create_engine(settings.database.url)

    try:
        if check_only:
            print(f"Database: {engine.dialect.name}")
            print(f"URL: {str(engine.url).split('@')[-1] if '@' in str(engine.url) else str(engine.url)}")
            print(f"Tables defined: {', '.join(Base.metadata.tables.keys())}")

            async with engine.connect() as conn:
                existing = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
            print(f"Tables existing: {', '.join(existing) or '(none)'}")

            missing = set(Base.metadata.tables.keys()) - set(existing)
            if missing:
                print(f"Tables MISSING: {', '.join(sorted(missing))}")
                print("Run without --check to create them.")
            else:
                print("All tables exist. ✓")
            return

        print("Running database migration...")
        await init_db(engine)
        print(f"Tables created/verified: {', '.join(Base.metadata.tables.keys())}")
        print("Migration complete. ✓")
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Database migration")
    parser.add_argument("--check", action="store_true", help="Check status only")
    parser.add_argument("--config", default=None, help="Path to settings YAML")
    args = parser.parse_args()

    asyncio.run(run_migration(check_only=args.check, config_path=args.config))


if __name__ == "__main__":
    main()
