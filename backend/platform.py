"""
Platform Connector — posts voicemail audio into platform conversations.

Two calls against the platform REST API, both form-encoded POSTs made
on behalf of an account with the service's bearer token:

  POST streams?on_behalf_of=<account>               create a conversation
  POST streams/<id>/chunks?on_behalf_of=<account>   append audio to it

The response body describes the resulting stream: {"id": ..., "others": [{"id": ...}]}.
No retries happen here; redelivery is driven by the pending-voicemail queue.
"""
from __future__ import annotations

import abc
import structlog
from typing import Any, Optional

import httpx

from config.settings import PlatformConfig
from models.errors import RemoteRejected, TransportError
from models.schemas import Stream

logger = structlog.get_logger()


class ConversationPoster(abc.ABC):
    """Abstract conversation poster, swapped for fakes in tests."""

    @abc.abstractmethod
    async def post_to_conversation(
        self, account_id: int, stream_id: int, fields: dict[str, Any],
    ) -> Stream:
        """
        Create a conversation (stream_id == 0) or append to an existing one,
        acting as ``account_id``. Raises RemoteRejected or TransportError.
        """
        ...

    async def close(self) -> None:
        pass


class PlatformClient(ConversationPoster):
    """REST client for the platform's stream endpoints."""

    def __init__(self, config: PlatformConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.api_url,
                timeout=httpx.Timeout(self.config.timeout_s, connect=10.0),
            )
        return self._client

    @staticmethod
    def _stream_path(stream_id: int) -> str:
        return f"streams/{stream_id}/chunks" if stream_id > 0 else "streams"

    async def post_to_conversation(
        self, account_id: int, stream_id: int, fields: dict[str, Any],
    ) -> Stream:
        client = await self._get_client()
        path = self._stream_path(stream_id)
        data = {k: str(v) for k, v in fields.items()}

        try:
            resp = await client.post(
                path,
                params={"on_behalf_of": str(account_id)},
                data=data,
                headers={"Authorization": f"Bearer {self.config.access_token}"},
            )
        except httpx.HTTPError as e:
            logger.error("platform_transport_error", path=path, account_id=account_id, error=str(e))
            raise TransportError(f"{path} (on behalf of {account_id}) failed: {e}") from e

        if resp.status_code != 200:
            logger.error(
                "platform_post_rejected",
                path=resp.request.url.path,
                account_id=account_id,
                status=resp.status_code,
                body=resp.text[:500],
            )
            raise RemoteRejected(resp.request.url.path, account_id, resp.status_code, resp.reason_phrase)

        try:
            stream = Stream.model_validate(resp.json())
        except ValueError as e:  # bad JSON or pydantic ValidationError
            raise TransportError(f"{path} (on behalf of {account_id}) returned a malformed stream: {e}") from e

        logger.debug("platform_post_ok", path=path, account_id=account_id, stream_id=stream.id)
        return stream

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
