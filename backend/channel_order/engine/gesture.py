"""
Drag gesture state machine for the channel list.

    IDLE -> DRAGGING -> COMMITTING -> IDLE
                     -> ABORTING   -> IDLE

The controller owns a working copy of the container mapping. At rest it is
rebuilt from the store on every store change. While a gesture is active
(anything but IDLE) store changes are only noted, so a push from another
client cannot yank rows out from under the pointer; one rebuild runs when
the controller gets back to IDLE.

Channel drags move between containers live in over(); the final in-container
move and persistence happen at end(). Category drags only reorder at end().
Stale or unknown ids never raise: the call is a no-op and the mapping stays
as it was.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel

from channel_order.engine.collision import Collision, DropTarget, EntityKind, Point, Rect, detect_collisions
from channel_order.engine.containers import (
    ContainerId,
    ContainerMapping,
    array_move,
    build_containers,
    copy_containers,
    find_container,
    sorted_categories,
)
from channel_order.engine.persistence import OrderPersister, PersistenceCoordinator
from channel_order.engine.store import OrderStore

if TYPE_CHECKING:
    from channel_order.engine.bindings import ViewBinding

logger = logging.getLogger(__name__)

Scheduler = Callable[[Callable[[], None]], None]


def call_soon(callback: Callable[[], None]) -> None:
    """Run callback on the next loop iteration, or right away when no loop is running."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback()
        return
    loop.call_soon(callback)


class GestureState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTING = "committing"
    ABORTING = "aborting"


class GestureSession(BaseModel):
    active_id: int
    active_kind: EntityKind
    # Mapping as it was at pick-up. Kept for inspection; aborts rebuild from the store instead.
    snapshot: dict[int | str, list[int]]
    is_dragging: bool = True


class GestureController:
    def __init__(
        self,
        server_id: int,
        store: OrderStore,
        persister: OrderPersister,
        binding: "ViewBinding | None" = None,
        schedule: Scheduler = call_soon,
    ) -> None:
        self.server_id = server_id
        self.store = store
        self.binding = binding
        self.schedule = schedule
        self.coordinator = PersistenceCoordinator(server_id, store, persister)

        self.state = GestureState.IDLE
        self.session: GestureSession | None = None
        self.containers: ContainerMapping = {}
        self._stale = False

        self._unsubscribe = store.subscribe(self._on_store_change)
        self.rebuild()

    # ------------------------------------------------------------------
    # Store sync
    # ------------------------------------------------------------------

    @property
    def is_dragging(self) -> bool:
        return self.session is not None and self.session.is_dragging

    def rebuild(self) -> None:
        """Replace the working mapping with one built from the store."""
        self.containers = build_containers(
            self.store.get_channels(self.server_id),
            self.store.get_categories(self.server_id),
        )
        self._stale = False
        self._render()

    def _on_store_change(self, server_id: int) -> None:
        if server_id != self.server_id:
            return
        if self.state is not GestureState.IDLE:
            logger.debug("Store changed during %s gesture on server %s; rebuild deferred", self.state.value, server_id)
            self._stale = True
            return
        self.rebuild()

    def _render(self) -> None:
        if self.binding is None:
            return
        try:
            self.binding.render(copy_containers(self.containers))
        except Exception:
            logger.exception("Channel list render failed for server %s", self.server_id)

    def close(self) -> None:
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _category_ids(self) -> list[int]:
        return [c.id for c in sorted_categories(self.store.get_categories(self.server_id))]

    def _resolve_container(self, target: DropTarget) -> ContainerId | None:
        """Container a target stands for: a drop zone's own container, or the one holding the row."""
        if target.kind == "container":
            container_id = target.container_id if target.container_id is not None else target.id
            return container_id if container_id in self.containers else None
        if target.kind == "category":
            # Category and channel ids share no namespace; a category row never hosts a channel.
            return None
        return find_container(self.containers, target.id)

    def collide(
        self,
        targets: list[DropTarget],
        pointer: Point | None = None,
        collision_rect: Rect | None = None,
    ) -> list[Collision]:
        """Collision pass for the active drag. Empty when nothing is being dragged."""
        if self.session is None:
            return []
        return detect_collisions(self.session.active_kind, targets, pointer, collision_rect)

    # ------------------------------------------------------------------
    # Gesture events
    # ------------------------------------------------------------------

    def start(self, entity_id: int, kind: EntityKind) -> None:
        if self.binding is not None and not self.binding.can_reorder:
            return
        if self.state is not GestureState.IDLE:
            logger.debug("Ignoring drag start for %s %s while %s", kind, entity_id, self.state.value)
            return
        self.session = GestureSession(
            active_id=entity_id,
            active_kind=kind,
            snapshot=copy_containers(self.containers),
        )
        self.state = GestureState.DRAGGING
        logger.debug("Drag started: %s %s on server %s", kind, entity_id, self.server_id)

    def over(self, active_id: int, target: DropTarget | None) -> None:
        """Move a dragged channel into the hovered container as soon as it changes."""
        if self.state is not GestureState.DRAGGING or target is None:
            return
        if self.session.active_kind != "channel":
            return

        source = find_container(self.containers, active_id)
        if source is None:
            return
        dest = self._resolve_container(target)
        if dest is None or dest == source:
            return

        source_ids = list(self.containers[source])
        dest_ids = list(self.containers[dest])
        source_ids.remove(active_id)
        if target.kind == "channel" and target.id in dest_ids:
            dest_ids.insert(dest_ids.index(target.id), active_id)
        else:
            dest_ids.append(active_id)

        self.containers = {**self.containers, source: source_ids, dest: dest_ids}
        logger.debug("Channel %s moved from %s to %s", active_id, source, dest)
        self._render()

    def end(self, active_id: int, target: DropTarget | None) -> None:
        if self.state is not GestureState.DRAGGING:
            return
        session = self.session
        session.is_dragging = False

        if target is None:
            self._abort()
            return

        self.state = GestureState.COMMITTING
        self.session = None

        if session.active_kind == "category":
            self._commit_category_move(active_id, target)
            self._finish()
            return

        source = find_container(self.containers, active_id)
        dest = self._resolve_container(target)
        if source is not None and source == dest and target.id != active_id:
            ids = self.containers[source]
            if target.kind == "channel" and target.id in ids:
                moved = array_move(ids, ids.index(active_id), ids.index(target.id))
                self.containers = {**self.containers, source: moved}
                self._render()

        # Deferred so every local mutation of this drop lands in one request.
        self.schedule(self._flush_channels)

    def cancel(self) -> None:
        """Explicit abort, e.g. Escape. Same as ending on no target."""
        if self.state is not GestureState.DRAGGING:
            return
        self.session.is_dragging = False
        self._abort()

    # ------------------------------------------------------------------
    # Commit / abort
    # ------------------------------------------------------------------

    def _commit_category_move(self, active_id: int, target: DropTarget) -> None:
        if target.kind != "category" or target.id == active_id:
            return
        order = self._category_ids()
        if active_id not in order or target.id not in order:
            return
        reordered = array_move(order, order.index(active_id), order.index(target.id))
        self.coordinator.commit_categories(reordered)
        logger.debug("Category %s moved to index %d on server %s", active_id, reordered.index(active_id), self.server_id)

    def _flush_channels(self) -> None:
        self.coordinator.commit_channels(copy_containers(self.containers))
        if self.state is GestureState.COMMITTING:
            self._finish()

    def _abort(self) -> None:
        self.state = GestureState.ABORTING
        self.session = None
        logger.debug("Drag aborted on server %s", self.server_id)
        self.rebuild()
        self.state = GestureState.IDLE

    def _finish(self) -> None:
        self.state = GestureState.IDLE
        if self._stale:
            self.rebuild()
