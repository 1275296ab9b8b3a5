"""Checklist codec for corrective actions.

A corrective action stores its checklist as a JSON array blob::

    [{"id": "item-1", "text": "Retrain staff", "completed": false,
      "completedAt": null, "completedBy": null}]

Every function here is pure: it takes a blob (or items) and returns a new
blob (or value). Nothing touches the database.
"""

import json
import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from ovr.services.errors import ValidationError
from ovr.utils.time import utc_now


class ChecklistError(ValidationError):
    """Raised when a checklist blob is malformed or an item is unknown."""

    def __init__(self, reason: str, path: str = "checklist") -> None:
        super().__init__(
            f"Failed to parse checklist: {reason}",
            [{"path": path, "message": reason}],
        )
        self.reason = reason


@dataclass(frozen=True)
class ChecklistItem:
    """Single completable checklist entry."""

    id: str
    text: str
    completed: bool = False
    completed_at: str | None = None
    completed_by: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the stored (camelCase) keys, in a fixed order."""
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "completedAt": self.completed_at,
            "completedBy": self.completed_by,
        }


def _parse_item(raw: Any, index: int) -> ChecklistItem:
    if not isinstance(raw, dict):
        raise ChecklistError(
            f"Invalid checklist item at index {index}", f"checklist.{index}"
        )

    item_id = raw.get("id")
    if not isinstance(item_id, str) or not item_id:
        raise ChecklistError(
            f"Checklist item {index} missing valid id", f"checklist.{index}.id"
        )

    text = raw.get("text")
    if not isinstance(text, str) or not text:
        raise ChecklistError(
            f"Checklist item {index} missing valid text", f"checklist.{index}.text"
        )

    completed = raw.get("completed")
    if not isinstance(completed, bool):
        raise ChecklistError(
            f"Checklist item {index} missing valid completed status",
            f"checklist.{index}.completed",
        )

    completed_at = raw.get("completedAt")
    if completed_at is not None and not isinstance(completed_at, str):
        raise ChecklistError(
            f"Checklist item {index} has invalid completedAt",
            f"checklist.{index}.completedAt",
        )

    # bool is a subclass of int and is not a user id
    completed_by = raw.get("completedBy")
    if completed_by is not None and (
        isinstance(completed_by, bool) or not isinstance(completed_by, int)
    ):
        raise ChecklistError(
            f"Checklist item {index} has invalid completedBy",
            f"checklist.{index}.completedBy",
        )

    return ChecklistItem(
        id=item_id,
        text=text,
        completed=completed,
        completed_at=completed_at,
        completed_by=completed_by,
    )


def parse_checklist(blob: str | None) -> list[ChecklistItem]:
    """Parse and validate a checklist blob.

    Args:
        blob: JSON text as stored on the corrective action

    Returns:
        Validated checklist items, in stored order

    Raises:
        ChecklistError: If the JSON is invalid, not an array, or any item is
            malformed (the message names the offending index)
    """
    if blob is None or not blob.strip():
        return []

    try:
        parsed = json.loads(blob)
    except json.JSONDecodeError as e:
        raise ChecklistError(f"Invalid JSON ({e.msg})") from e

    if not isinstance(parsed, list):
        raise ChecklistError("Checklist must be an array")

    return [_parse_item(raw, index) for index, raw in enumerate(parsed)]


def serialize_checklist(items: list[ChecklistItem]) -> str:
    """Serialize checklist items to a compact, deterministic JSON blob."""
    return json.dumps(
        [item.to_dict() for item in items],
        separators=(",", ":"),
        ensure_ascii=False,
    )


def _index_of(items: list[ChecklistItem], item_id: str) -> int:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index
    raise ChecklistError(f"Checklist item {item_id} not found", "itemId")


def toggle_checklist_item(
    blob: str | None,
    item_id: str,
    user_id: int | None = None,
    now: datetime | None = None,
) -> str:
    """Flip one item's completion state and return the new blob.

    Completing an item stamps ``completedAt``/``completedBy``; reopening it
    clears both.

    Raises:
        ChecklistError: If the blob is malformed or no item has ``item_id``
    """
    items = parse_checklist(blob)
    index = _index_of(items, item_id)

    item = items[index]
    if item.completed:
        items[index] = replace(item, completed=False, completed_at=None, completed_by=None)
    else:
        stamp = (now or utc_now()).isoformat()
        items[index] = replace(
            item, completed=True, completed_at=stamp, completed_by=user_id
        )

    return serialize_checklist(items)


def update_checklist_item(blob: str | None, item_id: str, **updates: Any) -> str:
    """Apply field updates (``text``, ``completed``, ...) to one item."""
    items = parse_checklist(blob)
    index = _index_of(items, item_id)

    try:
        updated = replace(items[index], **updates)
    except TypeError as e:
        raise ChecklistError(str(e), "updates") from e

    # Re-validate through the parser so an update cannot corrupt the blob
    items[index] = _parse_item(updated.to_dict(), index)
    return serialize_checklist(items)


def create_checklist(texts: list[str], now: datetime | None = None) -> str:
    """Create a fresh, fully open checklist from item texts."""
    stamp = int((now or utc_now()).timestamp() * 1000)
    items = []
    for index, text in enumerate(texts):
        text = text.strip()
        if not text:
            raise ChecklistError(
                f"Checklist item {index} missing valid text", f"checklist.{index}.text"
            )
        items.append(ChecklistItem(id=f"item-{stamp}-{index}", text=text))
    return serialize_checklist(items)


def is_checklist_complete(blob: str | None) -> bool:
    """Check if every item is completed. An empty checklist is not complete."""
    items = parse_checklist(blob)
    if not items:
        return False
    return all(item.completed for item in items)


def get_checklist_progress(blob: str | None) -> int:
    """Return completion as a whole percentage (0-100)."""
    items = parse_checklist(blob)
    if not items:
        return 0

    completed = sum(1 for item in items if item.completed)
    return math.floor(completed / len(items) * 100 + 0.5)
