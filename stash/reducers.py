"""
Pure reducer for a box's displayed item list.

Clients that keep a local copy of a box's items apply the result of each
mutation through `reduce_items` instead of editing the list ad hoc. When an
event cannot be applied cleanly (an unknown id, a stale row) `settle` falls
back to re-fetching the list from the store.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ItemSaved:
    """An item was created or updated; `item` is its serialized row."""
    item: dict


@dataclass(frozen=True)
class ItemRemoved:
    item_id: int


@dataclass(frozen=True)
class ItemsMoved:
    item_ids: tuple
    destination_box_id: int


def _sort_key(row: dict):
    # Mirrors catalog.list_items ordering: newest first, ties by id desc.
    return (row.get("created_at") or "", row.get("id") or 0)


def reduce_items(items: list[dict], box_id: int, event) -> tuple[list[dict], bool]:
    """
    Apply `event` to the item list of box `box_id`.

    Returns (new_list, clean). `clean` is False when the event referenced rows
    the list did not contain, meaning the local view may have drifted.
    """
    by_id = {row["id"]: row for row in items}

    if isinstance(event, ItemSaved):
        row = event.item
        if row.get("box_id") != box_id:
            clean = row["id"] in by_id
            by_id.pop(row["id"], None)
        else:
            clean = True
            by_id[row["id"]] = row

    elif isinstance(event, ItemRemoved):
        clean = event.item_id in by_id
        by_id.pop(event.item_id, None)

    elif isinstance(event, ItemsMoved):
        if event.destination_box_id == box_id:
            # Incoming rows are not known locally; only a re-fetch can show them.
            return list(items), False
        ids = set(event.item_ids)
        clean = ids.issubset(by_id)
        for item_id in ids:
            by_id.pop(item_id, None)

    else:
        raise TypeError(f"Unknown item event: {event!r}")

    new_items = sorted(by_id.values(), key=_sort_key, reverse=True)
    return new_items, clean


def settle(items: list[dict], box_id: int, event, refetch) -> list[dict]:
    """Apply `event`; on a mismatch return `refetch()` instead of the local guess."""
    new_items, clean = reduce_items(items, box_id, event)
    if clean:
        return new_items
    return refetch()
