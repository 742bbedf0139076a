"""
Bulk move coordinator.

Move state (mode flag, selection, destination) belongs to one source box and
lives in the user's session. Navigating to another box starts a fresh state.
"""

import logging
from dataclasses import dataclass, field

from . import catalog
from .constants import MOVE_SESSION_KEY
from .exceptions import NotFound, ValidationError
from .models import Box

logger = logging.getLogger(__name__)


@dataclass
class MovePlan:
    item_ids: list[int]
    source_box_id: int
    destination: Box

    @property
    def count(self) -> int:
        return len(self.item_ids)


@dataclass
class MoveSession:
    box_id: int
    move_mode: bool = False
    selected: set[int] = field(default_factory=set)
    destination: int | None = None

    # --- mode --------------------------------------------------------------

    def enter(self) -> None:
        self.move_mode = True

    def exit(self) -> None:
        self.move_mode = False
        self.clear()
        self.destination = None

    # --- selection ---------------------------------------------------------

    def toggle_select(self, item_id) -> None:
        item_id = int(item_id)
        if item_id in self.selected:
            self.selected.discard(item_id)
        else:
            self.selected.add(item_id)

    def select_all(self, item_ids) -> None:
        self.selected = {int(i) for i in item_ids}

    def clear(self) -> None:
        self.selected = set()

    def set_destination(self, box_id) -> None:
        if box_id in (None, ""):
            self.destination = None
            return
        try:
            self.destination = int(box_id)
        except (TypeError, ValueError):
            raise ValidationError("Choose a destination box.")

    # --- move --------------------------------------------------------------

    def request_move(self, scope: int) -> MovePlan:
        """Validate the pending move; each failed check has its own message."""
        if not self.move_mode:
            raise ValidationError("Turn on move mode first.")
        if not self.selected:
            raise ValidationError("Select at least one item.")
        if self.destination is None:
            raise ValidationError("Choose a destination box.")
        if self.destination == self.box_id:
            raise ValidationError("Destination must be a different box.")
        try:
            dest = catalog.get_box(scope, self.destination)
        except NotFound:
            raise NotFound("Destination box not found.")

        return MovePlan(item_ids=sorted(self.selected), source_box_id=self.box_id, destination=dest)

    def confirm_move(self, scope: int) -> MovePlan:
        """
        Move the selection. On success the selection and destination reset;
        on failure they are left intact for a retry.
        """
        plan = self.request_move(scope)
        catalog.move_items(scope, plan.item_ids, plan.destination.pk, source_box_id=self.box_id)

        self.clear()
        self.destination = None
        logger.info(f"Moved {plan.count} item(s) from box {self.box_id} to {plan.destination.code}")
        return plan

    # --- session storage ---------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "box_id": self.box_id,
            "move_mode": self.move_mode,
            "selected": sorted(self.selected),
            "destination": self.destination,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MoveSession":
        return cls(
            box_id=int(data["box_id"]),
            move_mode=bool(data.get("move_mode")),
            selected={int(i) for i in data.get("selected") or []},
            destination=data.get("destination"),
        )


def load_move_session(session, box_id) -> MoveSession:
    """State for `box_id`; any state saved for a different box is discarded."""
    data = session.get(MOVE_SESSION_KEY)
    if data and int(data.get("box_id", -1)) == int(box_id):
        return MoveSession.from_dict(data)
    return MoveSession(box_id=int(box_id))


def save_move_session(session, move: MoveSession) -> None:
    session[MOVE_SESSION_KEY] = move.to_dict()
