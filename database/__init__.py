"""
Database layer — Identity lookups and the pending-voicemail queue.

Backends:
  - SQL (PostgreSQL / MySQL / SQLite via SQLAlchemy async)
  - In-memory (dict-based, for development/testing)
  - File (JSON files on disk, for small deployments)

Quick start:
  from database import create_store
  store = create_store(settings.database)
  await store.init()
  identity = await store.get_identity("+15559998888")
"""
from database.models import Base, IdentityRow, PendingVoicemailRow
from database.session import create_engine, create_session_factory, init_db, session_scope
from database.store_base import BaseVoicemailStore
from database.store import SqlVoicemailStore
from database.store_memory import InMemoryVoicemailStore
from database.store_file import FileVoicemailStore
from database.store_factory import create_store

__all__ = [
    # ORM models
    "Base", "IdentityRow", "PendingVoicemailRow",
    # Session management
    "create_engine", "create_session_factory", "init_db", "session_scope",
    # Store interface
    "BaseVoicemailStore",
    # Store backends
    "SqlVoicemailStore", "InMemoryVoicemailStore", "FileVoicemailStore",
    # Factory
    "create_store",
]
