"""
Identity lookup — resolves phone numbers to platform accounts.

An unregistered number is a normal outcome (None), not an error. An
identity record without an account reference counts as unregistered too.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from database.store_base import BaseVoicemailStore
from models.schemas import Identity


async def lookup_identity(store: BaseVoicemailStore, phone_number: str) -> Optional[Identity]:
    identity = await store.get_identity(phone_number)
    if identity is None or identity.account is None:
        return None
    return identity


async def lookup_identity_pair(
    store: BaseVoicemailStore, a: str, b: str,
) -> tuple[Optional[Identity], Optional[Identity]]:
    """Look up both numbers concurrently. StorageError propagates."""
    aa, bb = await asyncio.gather(lookup_identity(store, a), lookup_identity(store, b))
    return aa, bb
