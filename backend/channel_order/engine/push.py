import logging
from typing import Any

from channel_order.core import events
from channel_order.engine.store import ChannelStore
from channel_order.schemas.category import CategoryResponse
from channel_order.schemas.channel import ChannelResponse

logger = logging.getLogger(__name__)


def handle_server_event(store: ChannelStore, server_id: int, event: dict[str, Any]) -> None:
    """Apply one pushed channel/category event to the store.

    Events arrive as {"type": "...", "data": ...} from the server socket.
    Unknown types are ignored.
    """
    event_type = event.get("type")
    d = event.get("data")

    if event_type == events.CHANNEL_CREATE:
        store.add_channel(server_id, ChannelResponse.model_validate(d))
    elif event_type == events.CHANNEL_UPDATE:
        changes = {k: v for k, v in d.items() if k != "id"}
        store.update_channel(server_id, d["id"], **changes)
    elif event_type == events.CHANNEL_DELETE:
        store.remove_channel(server_id, d["id"])
    elif event_type == events.CHANNEL_REORDER:
        store.set_channels(server_id, [ChannelResponse.model_validate(ch) for ch in d])
    elif event_type == events.CATEGORY_CREATE:
        store.add_category(server_id, CategoryResponse.model_validate(d))
    elif event_type == events.CATEGORY_UPDATE:
        changes = {k: v for k, v in d.items() if k != "id"}
        store.update_category(server_id, d["id"], **changes)
    elif event_type == events.CATEGORY_DELETE:
        store.remove_category(server_id, d["id"])
    elif event_type == events.CATEGORY_REORDER:
        store.set_categories(server_id, [CategoryResponse.model_validate(cat) for cat in d])
    else:
        logger.debug("Ignoring server event %r for server %s", event_type, server_id)
