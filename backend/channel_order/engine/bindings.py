"""
Call-site adapters for the drag engine.

The admin channel editor and the navigation sidebar run the same engine and
differ only in how they name drop zones, how far the pointer must travel
before a drag starts, whether the user may reorder at all, and what they
do with a new mapping. Each binding captures those differences and builds
the controller and sensor for its call site.
"""

from collections.abc import Callable

from channel_order.config import settings
from channel_order.engine.collision import DropTarget, Rect
from channel_order.engine.containers import UNCATEGORIZED, ContainerId, ContainerMapping
from channel_order.engine.gesture import GestureController, Scheduler, call_soon
from channel_order.engine.persistence import OrderPersister
from channel_order.engine.sensor import PointerSensor
from channel_order.engine.store import OrderStore

RenderCallback = Callable[[ContainerMapping], None]


class ViewBinding:
    drag_distance: float = 0.0

    def __init__(self, on_render: RenderCallback | None = None, can_reorder: bool = True) -> None:
        self.on_render = on_render
        self.can_reorder = can_reorder

    def render(self, mapping: ContainerMapping) -> None:
        if self.on_render is not None:
            self.on_render(mapping)

    def drop_zone_id(self, container_id: ContainerId) -> int | str:
        return f"drop:{container_id}"

    def drop_zone(self, container_id: ContainerId, rect: Rect | None = None) -> DropTarget:
        zone_id = self.drop_zone_id(container_id)
        return DropTarget(
            id=zone_id,
            kind="container",
            rect=rect,
            container_id=None if zone_id == container_id else container_id,
        )

    def channel_row(self, channel_id: int, rect: Rect | None = None) -> DropTarget:
        return DropTarget(id=channel_id, kind="channel", rect=rect)

    def category_row(self, category_id: int, rect: Rect | None = None) -> DropTarget:
        return DropTarget(id=category_id, kind="category", rect=rect)

    def attach(
        self,
        server_id: int,
        store: OrderStore,
        persister: OrderPersister,
        schedule: Scheduler = call_soon,
    ) -> tuple[GestureController, PointerSensor]:
        controller = GestureController(server_id, store, persister, binding=self, schedule=schedule)
        return controller, PointerSensor(controller, self.drag_distance)


class ChannelEditorBinding(ViewBinding):
    """Admin channel editor. Always reorderable.

    The uncategorized zone uses the bare container key as its id; category
    zones are prefixed so they don't clash with the category's sortable row.
    """

    drag_distance = settings.EDITOR_DRAG_DISTANCE

    def __init__(self, on_render: RenderCallback | None = None) -> None:
        super().__init__(on_render=on_render, can_reorder=True)

    def drop_zone_id(self, container_id: ContainerId) -> int | str:
        if container_id == UNCATEGORIZED:
            return UNCATEGORIZED
        return f"drop:{container_id}"


class SidebarBinding(ViewBinding):
    """Navigation sidebar. Reorderable only for users who can manage channels."""

    drag_distance = settings.SIDEBAR_DRAG_DISTANCE
