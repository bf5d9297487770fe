import logging

from channel_order.engine.collision import DropTarget, EntityKind, Point, distance
from channel_order.engine.gesture import GestureController

logger = logging.getLogger(__name__)


class PointerSensor:
    """Turns raw pointer presses into drag gestures.

    A press only becomes a drag once the pointer has travelled `distance`
    pixels, so clicking a row still selects it. Releasing before that is a
    click and never reaches the controller.
    """

    def __init__(self, controller: GestureController, distance: float) -> None:
        self.controller = controller
        self.distance = distance
        self._pressed: tuple[int, EntityKind] | None = None
        self._origin: Point | None = None
        self.active = False

    def press(self, entity_id: int, kind: EntityKind, point: Point) -> None:
        self._pressed = (entity_id, kind)
        self._origin = point
        self.active = False

    def move(self, point: Point) -> bool:
        """Track pointer travel. Returns True once the press has become a drag."""
        if self._pressed is None:
            return False
        if not self.active and distance(self._origin, point) >= self.distance:
            entity_id, kind = self._pressed
            self.controller.start(entity_id, kind)
            self.active = self.controller.is_dragging
            if not self.active:
                # Reordering not allowed here; treat the rest of the press as inert.
                self._reset()
        return self.active

    def release(self, target: DropTarget | None) -> bool:
        """End the press. Returns True if it was a drag, False for a plain click."""
        if self._pressed is None:
            return False
        was_drag = self.active
        if was_drag:
            self.controller.end(self._pressed[0], target)
        self._reset()
        return was_drag

    def cancel(self) -> None:
        if self.active:
            self.controller.cancel()
        self._reset()

    def _reset(self) -> None:
        self._pressed = None
        self._origin = None
        self.active = False
