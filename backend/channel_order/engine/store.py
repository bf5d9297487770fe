"""
Client-side channel store: the local cache of remote-confirmed channels and
categories, keyed per server.

It is the single source of truth whenever no drag is in progress. Writes
come from two places only: optimistic batches applied at drag commit, and
push events from the server (see engine.push). Every write notifies
subscribers with the affected server id.
"""

import logging
from collections.abc import Callable
from typing import Protocol

from channel_order.schemas.category import CategoryPosition, CategoryResponse
from channel_order.schemas.channel import ChannelPosition, ChannelResponse

logger = logging.getLogger(__name__)

Listener = Callable[[int], None]


class OrderStore(Protocol):
    """What the drag engine needs from a store."""

    def get_channels(self, server_id: int) -> list[ChannelResponse]: ...

    def get_categories(self, server_id: int) -> list[CategoryResponse]: ...

    def apply_channel_positions(self, server_id: int, batch: list[ChannelPosition]) -> None: ...

    def apply_category_positions(self, server_id: int, batch: list[CategoryPosition]) -> None: ...

    def subscribe(self, listener: Listener) -> Callable[[], None]: ...


class ChannelStore:
    def __init__(self) -> None:
        # server_id -> {channel_id: ChannelResponse}
        self._channels: dict[int, dict[int, ChannelResponse]] = {}
        # server_id -> {category_id: CategoryResponse}
        self._categories: dict[int, dict[int, CategoryResponse]] = {}
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, server_id: int) -> None:
        for listener in list(self._listeners):
            try:
                listener(server_id)
            except Exception:
                logger.exception("Channel store listener failed for server %s", server_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_channels(self, server_id: int) -> list[ChannelResponse]:
        return list(self._channels.get(server_id, {}).values())

    def get_channel(self, server_id: int, channel_id: int) -> ChannelResponse | None:
        return self._channels.get(server_id, {}).get(channel_id)

    def get_categories(self, server_id: int) -> list[CategoryResponse]:
        return list(self._categories.get(server_id, {}).values())

    def get_category(self, server_id: int, category_id: int) -> CategoryResponse | None:
        return self._categories.get(server_id, {}).get(category_id)

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def set_channels(self, server_id: int, channels: list[ChannelResponse]) -> None:
        """Replace the server's whole channel set."""
        self._channels[server_id] = {ch.id: ch for ch in sorted(channels, key=lambda c: c.position)}
        self._notify(server_id)

    def add_channel(self, server_id: int, channel: ChannelResponse) -> None:
        self._channels.setdefault(server_id, {})[channel.id] = channel
        self._notify(server_id)

    def update_channel(self, server_id: int, channel_id: int, **changes) -> None:
        """Merge changes into an existing channel. Unknown ids are ignored."""
        existing = self._channels.get(server_id, {}).get(channel_id)
        if existing is None:
            return
        self._channels[server_id][channel_id] = existing.model_copy(update=changes)
        self._notify(server_id)

    def remove_channel(self, server_id: int, channel_id: int) -> None:
        """Drop a channel and close the gap in its container, as the authority does."""
        server_channels = self._channels.get(server_id, {})
        removed = server_channels.pop(channel_id, None)
        if removed is not None:
            siblings = [ch for ch in server_channels.values() if ch.category_id == removed.category_id]
            self._renumber(server_channels, siblings)
        self._notify(server_id)

    @staticmethod
    def _renumber(
        server_channels: dict[int, ChannelResponse],
        channels: list[ChannelResponse],
        start: int = 0,
        **changes,
    ) -> None:
        ordered = sorted(channels, key=lambda c: (c.position, c.id))
        for idx, ch in enumerate(ordered, start=start):
            server_channels[ch.id] = ch.model_copy(update={**changes, "position": idx})

    def apply_channel_positions(self, server_id: int, batch: list[ChannelPosition]) -> None:
        """Write a reorder batch in one step, notifying once."""
        server_channels = self._channels.get(server_id, {})
        for p in batch:
            existing = server_channels.get(p.channel_id)
            if existing is None:
                continue
            server_channels[p.channel_id] = existing.model_copy(
                update={"position": p.position, "category_id": p.category_id}
            )
        self._notify(server_id)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def set_categories(self, server_id: int, categories: list[CategoryResponse]) -> None:
        self._categories[server_id] = {cat.id: cat for cat in categories}
        self._notify(server_id)

    def add_category(self, server_id: int, category: CategoryResponse) -> None:
        self._categories.setdefault(server_id, {})[category.id] = category
        self._notify(server_id)

    def update_category(self, server_id: int, category_id: int, **changes) -> None:
        existing = self._categories.get(server_id, {}).get(category_id)
        if existing is None:
            return
        self._categories[server_id][category_id] = existing.model_copy(update=changes)
        self._notify(server_id)

    def remove_category(self, server_id: int, category_id: int) -> None:
        """Drop a category the way the authority does.

        Its channels keep their relative order and go to the end of the
        uncategorized bucket. Remaining categories are renumbered 0..m-1.
        """
        server_categories = self._categories.get(server_id, {})
        server_categories.pop(category_id, None)
        for idx, cat in enumerate(sorted(server_categories.values(), key=lambda c: (c.position, c.id))):
            server_categories[cat.id] = cat.model_copy(update={"position": idx})

        server_channels = self._channels.get(server_id, {})
        uncategorized = sum(1 for ch in server_channels.values() if ch.category_id is None)
        orphans = [ch for ch in server_channels.values() if ch.category_id == category_id]
        self._renumber(server_channels, orphans, start=uncategorized, category_id=None)
        self._notify(server_id)

    def apply_category_positions(self, server_id: int, batch: list[CategoryPosition]) -> None:
        server_categories = self._categories.get(server_id, {})
        for p in batch:
            existing = server_categories.get(p.category_id)
            if existing is None:
                continue
            server_categories[p.category_id] = existing.model_copy(update={"position": p.position})
        self._notify(server_id)

    def clear_server(self, server_id: int) -> None:
        self._channels.pop(server_id, None)
        self._categories.pop(server_id, None)
        self._notify(server_id)
