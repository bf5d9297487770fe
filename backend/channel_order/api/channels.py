import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from channel_order.api.deps import require_server
from channel_order.core import events
from channel_order.database import get_db
from channel_order.models.category import Category
from channel_order.models.channel import Channel
from channel_order.models.server import Server
from channel_order.schemas.channel import ChannelCreate, ChannelReorder, ChannelResponse
from channel_order.websocket.manager import manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["channels"])


def _ordered_channels(server_id: int, db: Session) -> list[Channel]:
    """All channels of a server, uncategorized first, then by category and position."""
    return (
        db.query(Channel)
        .filter(Channel.server_id == server_id)
        .order_by(Channel.category_id.is_not(None), Channel.category_id, Channel.position, Channel.id)
        .all()
    )


def _get_channel_for_server(channel_id: int, server_id: int, db: Session) -> Channel:
    """
    Fetch a channel and verify it belongs to the given server.
    Raises 404 if not found or if the channel belongs to a different server.
    """
    channel = db.query(Channel).filter(Channel.id == channel_id, Channel.server_id == server_id).first()
    if not channel:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Channel not found")
    return channel


def _container_query(server_id: int, category_id: int | None, db: Session):
    query = db.query(Channel).filter(Channel.server_id == server_id)
    if category_id is None:
        return query.filter(Channel.category_id.is_(None))
    return query.filter(Channel.category_id == category_id)


def _broadcast(server_id: int, event_type: str, data) -> None:
    asyncio.ensure_future(manager.broadcast_to_server(server_id, {"type": event_type, "data": data}))


@router.get("/servers/{server_id}/channels", response_model=list[ChannelResponse])
async def list_channels(
    server_id: int,
    server: Server = Depends(require_server),
    db: Session = Depends(get_db),
) -> list[ChannelResponse]:
    return [ChannelResponse.model_validate(c) for c in _ordered_channels(server_id, db)]


@router.post(
    "/servers/{server_id}/channels",
    response_model=ChannelResponse,
    status_code=201,
)
async def create_channel(
    server_id: int,
    channel_in: ChannelCreate,
    server: Server = Depends(require_server),
    db: Session = Depends(get_db),
) -> ChannelResponse:
    """Create a channel at the end of its container (a category, or uncategorized)."""
    existing = (
        db.query(Channel)
        .filter(
            Channel.server_id == server_id,
            Channel.name == channel_in.name,
        )
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A channel with this name already exists in the server",
        )

    if channel_in.category_id is not None:
        category = (
            db.query(Category)
            .filter(Category.id == channel_in.category_id, Category.server_id == server_id)
            .first()
        )
        if not category:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    channel = Channel(
        name=channel_in.name,
        topic=channel_in.topic,
        server_id=server_id,
        category_id=channel_in.category_id,
        position=_container_query(server_id, channel_in.category_id, db).count(),
    )
    db.add(channel)
    db.commit()
    db.refresh(channel)

    response = ChannelResponse.model_validate(channel)
    _broadcast(server_id, events.CHANNEL_CREATE, response.model_dump(mode="json"))
    return response


@router.delete(
    "/servers/{server_id}/channels/{channel_id}",
    status_code=204,
)
async def delete_channel(
    server_id: int,
    channel_id: int,
    server: Server = Depends(require_server),
    db: Session = Depends(get_db),
) -> None:
    channel = _get_channel_for_server(channel_id, server_id, db)
    category_id = channel.category_id
    db.delete(channel)
    db.flush()
    siblings = _container_query(server_id, category_id, db).order_by(Channel.position, Channel.id).all()
    for idx, sibling in enumerate(siblings):
        sibling.position = idx
    db.commit()

    _broadcast(server_id, events.CHANNEL_DELETE, {"id": channel_id})


@router.put(
    "/servers/{server_id}/channels/reorder",
    response_model=list[ChannelResponse],
)
async def reorder_channels(
    server_id: int,
    reorder_in: ChannelReorder,
    server: Server = Depends(require_server),
    db: Session = Depends(get_db),
) -> list[ChannelResponse]:
    """Apply a complete channel ordering, including category moves, in one write."""
    ids = [p.channel_id for p in reorder_in.channels]
    if len(ids) != len(set(ids)):
        raise HTTPException(status_code=422, detail="Duplicate channel ids in reorder batch")

    by_id = {c.id: c for c in _ordered_channels(server_id, db)}
    missing = [cid for cid in ids if cid not in by_id]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Channels not found in this server: {missing}",
        )

    category_ids = {p.category_id for p in reorder_in.channels if p.category_id is not None}
    if category_ids:
        known = {
            row.id
            for row in db.query(Category.id).filter(Category.server_id == server_id, Category.id.in_(category_ids))
        }
        unknown = sorted(category_ids - known)
        if unknown:
            raise HTTPException(status_code=422, detail=f"Unknown categories in reorder batch: {unknown}")

    for p in reorder_in.channels:
        channel = by_id[p.channel_id]
        channel.position = p.position
        channel.category_id = p.category_id
    db.commit()

    result = [ChannelResponse.model_validate(c) for c in _ordered_channels(server_id, db)]
    logger.info("Reordered %d channels in server %s", len(ids), server_id)
    _broadcast(server_id, events.CHANNEL_REORDER, [c.model_dump(mode="json") for c in result])
    return result
