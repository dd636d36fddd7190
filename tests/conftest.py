"""Shared test fixtures for the voicemail bridge."""
import pytest
from unittest.mock import AsyncMock

from backend.platform import ConversationPoster
from config.settings import Settings, FlusherConfig
from core.engine import DeliveryEngine
from core.flusher import QueueFlusher
from database.store_memory import InMemoryVoicemailStore
from models.schemas import Identity, Participant, Stream


CALLER = "+15551230000"
RECIPIENT = "+15559998888"
RECORDING_URL = "https://api.twilio.com/2010-04-01/Accounts/AC123/Recordings/RE123"

CALLER_ACCOUNT = 1001
RECIPIENT_ACCOUNT = 2002


@pytest.fixture
def store() -> InMemoryVoicemailStore:
    return InMemoryVoicemailStore()


@pytest.fixture
def poster() -> AsyncMock:
    """Conversation poster double; every post returns an empty stream by default."""
    mock = AsyncMock(spec=ConversationPoster)
    mock.post_to_conversation.return_value = Stream(id=500)
    return mock


@pytest.fixture
def engine(store, poster) -> DeliveryEngine:
    return DeliveryEngine(store, poster)


@pytest.fixture
def flusher(store, engine) -> QueueFlusher:
    return QueueFlusher(store, engine, interval_s=1)


@pytest.fixture
def settings() -> Settings:
    return Settings(flusher=FlusherConfig(enabled=False))


@pytest.fixture
def linked_recipient(store):
    """Recipient with an account that receives voicemail as conversations."""
    async def _link(number: str = RECIPIENT, account: int = RECIPIENT_ACCOUNT):
        await store.put_identity(number, Identity(account=account, available=False, status="active"))
    return _link


@pytest.fixture
def linked_caller(store):
    async def _link(number: str = CALLER, account: int = CALLER_ACCOUNT):
        await store.put_identity(number, Identity(account=account, available=False))
    return _link


def reverse_stream(stream_id: int = 42, other: int = None) -> Stream:
    """Stream returned by a reverse-created conversation."""
    others = [Participant(id=other)] if other is not None else []
    return Stream(id=stream_id, others=others)
