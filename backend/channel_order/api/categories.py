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
from channel_order.schemas.category import CategoryCreate, CategoryReorder, CategoryResponse
from channel_order.websocket.manager import manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["categories"])


def _ordered_categories(server_id: int, db: Session) -> list[Category]:
    return (
        db.query(Category)
        .filter(Category.server_id == server_id)
        .order_by(Category.position, Category.id)
        .all()
    )


def _get_category_for_server(category_id: int, server_id: int, db: Session) -> Category:
    """
    Fetch a category and verify it belongs to the given server.
    Raises 404 if not found or if the category belongs to a different server.
    """
    category = db.query(Category).filter(Category.id == category_id, Category.server_id == server_id).first()
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category


def _broadcast(server_id: int, event_type: str, data) -> None:
    asyncio.ensure_future(manager.broadcast_to_server(server_id, {"type": event_type, "data": data}))


@router.get("/servers/{server_id}/categories", response_model=list[CategoryResponse])
async def list_categories(
    server_id: int,
    server: Server = Depends(require_server),
    db: Session = Depends(get_db),
) -> list[CategoryResponse]:
    """Return the server's categories in display order."""
    return [CategoryResponse.model_validate(c) for c in _ordered_categories(server_id, db)]


@router.post(
    "/servers/{server_id}/categories",
    response_model=CategoryResponse,
    status_code=201,
)
async def create_category(
    server_id: int,
    category_in: CategoryCreate,
    server: Server = Depends(require_server),
    db: Session = Depends(get_db),
) -> CategoryResponse:
    """Create a category at the end of the server's category list."""
    position = db.query(Category).filter(Category.server_id == server_id).count()
    category = Category(name=category_in.name, server_id=server_id, position=position)
    db.add(category)
    db.commit()
    db.refresh(category)

    response = CategoryResponse.model_validate(category)
    _broadcast(server_id, events.CATEGORY_CREATE, response.model_dump(mode="json"))
    return response


@router.delete(
    "/servers/{server_id}/categories/{category_id}",
    status_code=204,
)
async def delete_category(
    server_id: int,
    category_id: int,
    server: Server = Depends(require_server),
    db: Session = Depends(get_db),
) -> None:
    """Delete a category. Its channels move to the end of the uncategorized bucket."""
    category = _get_category_for_server(category_id, server_id, db)

    uncategorized = (
        db.query(Channel)
        .filter(Channel.server_id == server_id, Channel.category_id.is_(None))
        .count()
    )
    orphans = (
        db.query(Channel)
        .filter(Channel.category_id == category_id)
        .order_by(Channel.position, Channel.id)
        .all()
    )
    for offset, channel in enumerate(orphans):
        channel.category_id = None
        channel.position = uncategorized + offset

    db.delete(category)
    db.flush()
    # Close the gap the deleted category left behind.
    for idx, remaining in enumerate(_ordered_categories(server_id, db)):
        remaining.position = idx
    db.commit()

    _broadcast(server_id, events.CATEGORY_DELETE, {"id": category_id})


@router.put(
    "/servers/{server_id}/categories/reorder",
    response_model=list[CategoryResponse],
)
async def reorder_categories(
    server_id: int,
    reorder_in: CategoryReorder,
    server: Server = Depends(require_server),
    db: Session = Depends(get_db),
) -> list[CategoryResponse]:
    """Apply a complete category ordering in one write.

    Clients send every category of the server, never a delta.
    """
    ids = [p.category_id for p in reorder_in.categories]
    if len(ids) != len(set(ids)):
        raise HTTPException(
            status_code=422,
            detail="Duplicate category ids in reorder batch",
        )

    by_id = {c.id: c for c in _ordered_categories(server_id, db)}
    missing = [cid for cid in ids if cid not in by_id]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Categories not found in this server: {missing}",
        )

    for p in reorder_in.categories:
        by_id[p.category_id].position = p.position
    db.commit()

    result = [CategoryResponse.model_validate(c) for c in _ordered_categories(server_id, db)]
    logger.info("Reordered %d categories in server %s", len(ids), server_id)
    _broadcast(server_id, events.CATEGORY_REORDER, [c.model_dump(mode="json") for c in result])
    return result
