"""
Commit-time persistence for drag reorders.

Each commit recomputes dense positions for every channel (or every
category) of the server, applies them to the local store straight away,
then hands the same batch to an OrderPersister exactly once.

Persistence is best effort: a failed request is logged and dropped. There
is no retry and no rollback, so the local store can drift from the server
until the next push event replaces it. Two quick commits may also land out
of order on the server; nothing sequences them.
"""

import asyncio
import logging
import threading
from typing import Protocol

import httpx

from channel_order.config import settings
from channel_order.engine.containers import ContainerMapping, category_id_for
from channel_order.engine.store import OrderStore
from channel_order.schemas.category import CategoryPosition
from channel_order.schemas.channel import ChannelPosition

logger = logging.getLogger(__name__)


class OrderPersister(Protocol):
    """Fire-and-forget sink for reorder batches. Must not block the caller."""

    def persist_channel_order(self, server_id: int, batch: list[ChannelPosition]) -> None: ...

    def persist_category_order(self, server_id: int, batch: list[CategoryPosition]) -> None: ...


def channel_positions(mapping: ContainerMapping) -> list[ChannelPosition]:
    """Flatten a mapping into one row per channel, position = index in its container."""
    batch: list[ChannelPosition] = []
    for container_id, channel_ids in mapping.items():
        category_id = category_id_for(container_id)
        for idx, channel_id in enumerate(channel_ids):
            batch.append(ChannelPosition(channel_id=channel_id, position=idx, category_id=category_id))
    return batch


def category_positions(ordered_ids: list[int]) -> list[CategoryPosition]:
    return [CategoryPosition(category_id=cid, position=idx) for idx, cid in enumerate(ordered_ids)]


class PersistenceCoordinator:
    def __init__(self, server_id: int, store: OrderStore, persister: OrderPersister) -> None:
        self.server_id = server_id
        self.store = store
        self.persister = persister

    def commit_channels(self, mapping: ContainerMapping) -> list[ChannelPosition]:
        """Persist the whole mapping, every container included, not just the touched ones."""
        batch = channel_positions(mapping)
        self.store.apply_channel_positions(self.server_id, batch)
        try:
            self.persister.persist_channel_order(self.server_id, batch)
        except Exception as exc:
            logger.warning("Channel reorder for server %s not sent: %s", self.server_id, exc)
        return batch

    def commit_categories(self, ordered_ids: list[int]) -> list[CategoryPosition]:
        batch = category_positions(ordered_ids)
        self.store.apply_category_positions(self.server_id, batch)
        try:
            self.persister.persist_category_order(self.server_id, batch)
        except Exception as exc:
            logger.warning("Category reorder for server %s not sent: %s", self.server_id, exc)
        return batch


class HttpOrderPersister:
    """Sends reorder batches to the authority's PUT .../reorder endpoints.

    Inside a running event loop each request becomes a background task.
    Without a loop it is sent from a daemon thread. The call returns
    immediately either way and failures only reach the log.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.API_BASE_URL
        token = settings.API_TOKEN if token is None else token
        self.headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.timeout = settings.REQUEST_TIMEOUT if timeout is None else timeout
        self._client = client
        self._transport = transport
        self._tasks: set[asyncio.Task] = set()
        self._threads: set[threading.Thread] = set()

    def persist_channel_order(self, server_id: int, batch: list[ChannelPosition]) -> None:
        self._send(
            f"/api/servers/{server_id}/channels/reorder",
            {"channels": [p.model_dump() for p in batch]},
        )

    def persist_category_order(self, server_id: int, batch: list[CategoryPosition]) -> None:
        self._send(
            f"/api/servers/{server_id}/categories/reorder",
            {"categories": [p.model_dump() for p in batch]},
        )

    def _send(self, path: str, payload: dict) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            thread = threading.Thread(target=self._put_blocking, args=(path, payload), daemon=True)
            self._threads.add(thread)
            thread.start()
            return
        task = loop.create_task(self._put(path, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, headers=self.headers, timeout=self.timeout)
        return self._client

    async def _put(self, path: str, payload: dict) -> None:
        try:
            response = await self._get_client().put(path, json=payload, headers=self.headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Reorder request %s failed: %s", path, exc)
            return
        logger.debug("Reorder request %s accepted (%s)", path, response.status_code)

    def _put_blocking(self, path: str, payload: dict) -> None:
        try:
            with httpx.Client(
                base_url=self.base_url,
                headers=self.headers,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                client.put(path, json=payload).raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Reorder request %s failed: %s", path, exc)
        finally:
            self._threads.discard(threading.current_thread())

    def join(self, timeout: float | None = None) -> None:
        """Wait for requests sent without an event loop."""
        for thread in list(self._threads):
            thread.join(timeout)

    async def drain(self) -> None:
        """Wait for in-flight requests. Used at shutdown and in tests."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._client is not None:
            await self._client.aclose()
            self._client = None
