"""
Container mapping: the derived "which channels sit where, in what order" view.

A server's channels live in containers: one per category plus the single
uncategorized bucket. The mapping is rebuilt from stored positions and is
never the source of truth itself.
"""

from collections.abc import Iterable

from channel_order.schemas.category import CategoryResponse
from channel_order.schemas.channel import ChannelResponse

# Reserved container key for channels whose category_id is NULL.
UNCATEGORIZED = "uncategorized"

ContainerId = int | str
ContainerMapping = dict[ContainerId, list[int]]


def container_key(category_id: int | None) -> ContainerId:
    return UNCATEGORIZED if category_id is None else category_id


def category_id_for(container_id: ContainerId) -> int | None:
    return None if container_id == UNCATEGORIZED else container_id


def sorted_categories(categories: Iterable[CategoryResponse]) -> list[CategoryResponse]:
    return sorted(categories, key=lambda c: (c.position, c.id))


def build_containers(
    channels: Iterable[ChannelResponse],
    categories: Iterable[CategoryResponse],
) -> ContainerMapping:
    """Group channel ids by container, each list ordered by stored position.

    Keys come out uncategorized first, then categories in position order.
    Channels pointing at a category that is not in `categories` are left out.
    """
    result: ContainerMapping = {UNCATEGORIZED: []}
    for cat in sorted_categories(categories):
        result[cat.id] = []

    ordered = sorted(channels, key=lambda ch: (ch.position, ch.id))
    for ch in ordered:
        bucket = result.get(container_key(ch.category_id))
        if bucket is not None:
            bucket.append(ch.id)
    return result


def copy_containers(mapping: ContainerMapping) -> ContainerMapping:
    return {key: list(ids) for key, ids in mapping.items()}


def find_container(mapping: ContainerMapping, channel_id) -> ContainerId | None:
    """Return the container holding channel_id, or None if no container does."""
    for container_id, ids in mapping.items():
        if channel_id in ids:
            return container_id
    return None


def array_move(items: list, from_index: int, to_index: int) -> list:
    """Return a copy of items with the element at from_index moved to to_index."""
    moved = list(items)
    moved.insert(to_index, moved.pop(from_index))
    return moved
