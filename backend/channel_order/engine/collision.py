"""
Collision detection for channel/category drags.

The host gesture layer measures every droppable row and hands the list to
detect_collisions() on each pointer move. Three kinds of target exist:

  category   a category row, sortable among other categories
  channel    a channel row, sortable within and across containers
  container  a drop zone covering a container's channel list

A dragged category only ever collides with other categories. A dragged
channel collides with channels and drop zones, never with a category row.
Nearest-centre ranking is tried first; when it finds nothing (for instance
the host could not measure the dragged row) pointer containment over drop
zones decides, which is what keeps an empty category droppable.
"""

import math
from typing import Literal

from pydantic import BaseModel

from channel_order.engine.containers import ContainerId

TargetKind = Literal["category", "channel", "container"]
EntityKind = Literal["category", "channel"]


class Point(BaseModel):
    x: float
    y: float


class Rect(BaseModel):
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> Point:
        return Point(x=self.left + self.width / 2, y=self.top + self.height / 2)

    @property
    def corners(self) -> list[Point]:
        return [
            Point(x=self.left, y=self.top),
            Point(x=self.right, y=self.top),
            Point(x=self.left, y=self.bottom),
            Point(x=self.right, y=self.bottom),
        ]

    def contains(self, point: Point) -> bool:
        return self.left <= point.x <= self.right and self.top <= point.y <= self.bottom


class DropTarget(BaseModel):
    """A droppable row or zone as measured by the host.

    container_id is set on drop zones whose own id differs from the container
    they stand for (the sidebar prefixes zone ids with "drop:").
    rect is None when the host has not measured the target yet.
    """

    id: int | str
    kind: TargetKind
    rect: Rect | None = None
    container_id: ContainerId | None = None


class Collision(BaseModel):
    target: DropTarget
    value: float


def distance(a: Point, b: Point) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def compatible_targets(active_kind: EntityKind, targets: list[DropTarget]) -> list[DropTarget]:
    if active_kind == "category":
        return [t for t in targets if t.kind == "category"]
    return [t for t in targets if t.kind != "category"]


def closest_center(collision_rect: Rect | None, targets: list[DropTarget]) -> list[Collision]:
    """Rank measured targets by distance between centres, nearest first."""
    if collision_rect is None:
        return []
    origin = collision_rect.center
    hits = [Collision(target=t, value=distance(origin, t.rect.center)) for t in targets if t.rect is not None]
    return sorted(hits, key=lambda c: c.value)


def pointer_within(pointer: Point | None, targets: list[DropTarget]) -> list[Collision]:
    """Targets whose rect contains the pointer, ranked by mean corner distance."""
    if pointer is None:
        return []
    hits = []
    for t in targets:
        if t.rect is None or not t.rect.contains(pointer):
            continue
        corners = t.rect.corners
        mean = sum(distance(pointer, c) for c in corners) / len(corners)
        hits.append(Collision(target=t, value=mean))
    return sorted(hits, key=lambda c: c.value)


def detect_collisions(
    active_kind: EntityKind,
    targets: list[DropTarget],
    pointer: Point | None = None,
    collision_rect: Rect | None = None,
) -> list[Collision]:
    """Return colliding targets for the dragged entity, best match first.

    An empty list means there is no valid target under the drag.
    """
    candidates = compatible_targets(active_kind, targets)
    if active_kind == "category":
        return closest_center(collision_rect, candidates)

    center_hits = closest_center(collision_rect, candidates)
    if center_hits:
        return center_hits
    zones = [t for t in candidates if t.kind == "container"]
    return pointer_within(pointer, zones)
