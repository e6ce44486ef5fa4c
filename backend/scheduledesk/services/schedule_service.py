"""Channel schedule writes: slot CRUD with index compaction, metadata, categories.

Responsibilities:
- Authorization hook: admin or a session scoped to the channel
- Channel existence: schedule keys are only written for registered channels
- Slot list is the single source of truth for which slots exist and in what order
- Compaction: after a delete the remaining indices are rewritten to 0..N-1

Known race: concurrent deletes on one channel read the slot list, then rewrite
it. Last writer wins and the targeted index never comes back, but which
compaction lands last is not deterministic. No caller issues concurrent deletes.
"""
import json
import logging
from datetime import datetime
from typing import Any, Optional

from scheduledesk.errors import InvalidArgument, NotFound
from scheduledesk.services.auth_service import Authorizer, check_can_manage
from scheduledesk.services.schedule_query_service import read_metadata, read_slot
from scheduledesk.store import keys
from scheduledesk.store.base import KeyValueStore

logger = logging.getLogger(__name__)

_REQUIRED_SLOT_FIELDS = ("hour", "time", "category", "activity")


def _check_channel_exists(store: KeyValueStore, channel_name: str) -> None:
    if not store.set_contains(keys.CHANNELS_KEY, channel_name):
        raise NotFound(f"Channel '{channel_name}' not found")


def _check_slot_exists(store: KeyValueStore, channel_name: str, index: str) -> None:
    # Exact string match: "01" or "-0" never matches "1" / "0"
    if not store.list_contains(keys.slots_key(channel_name), index):
        raise NotFound(f"Slot {index} not found")


def _normalize_hour(hour: Any) -> str:
    """Return the hour as a decimal string, or raise InvalidArgument."""
    if isinstance(hour, bool):
        raise InvalidArgument("hour must be a non-negative integer")
    if isinstance(hour, int):
        value = hour
    else:
        text = str(hour).strip()
        # ASCII only: "²" passes isdigit() but int() rejects it
        if not (text.isascii() and text.isdigit()):
            raise InvalidArgument("hour must be a non-negative integer")
        value = int(text)
    if value < 0:
        raise InvalidArgument("hour must be a non-negative integer")
    return str(value)


def _check_format(field: str, value: str, fmt: str, label: str) -> None:
    try:
        datetime.strptime(value, fmt)
    except ValueError:
        raise InvalidArgument(f"{field} must be formatted as {label}")


def append_slot(
    store: KeyValueStore,
    authorizer: Authorizer,
    token: Optional[str],
    channel_name: str,
    hour: Any,
    time: str,
    category: str,
    activity: str,
    description: str = "",
) -> tuple[str, dict[str, Any]]:
    """Append a slot at index ``len(slots)``; return the index and the stored slot."""
    check_can_manage(authorizer, token, channel_name)
    _check_channel_exists(store, channel_name)

    provided = {"hour": hour, "time": time, "category": category, "activity": activity}
    missing = [f for f in _REQUIRED_SLOT_FIELDS if provided[f] is None or provided[f] == ""]
    if missing:
        raise InvalidArgument(f"Missing required fields: {', '.join(missing)}")
    fields = {
        "hour": _normalize_hour(hour),
        "time": time,
        "category": category,
        "activity": activity,
        "description": description or "",
    }

    slots_key = keys.slots_key(channel_name)
    index = str(len(store.list_range(slots_key)))
    with store.atomic():
        for field, value in fields.items():
            store.set(keys.slot_field_key(channel_name, index, field), value)
        store.list_append(slots_key, index)

    logger.info("Appended slot %s to channel %s (%s)", index, channel_name, activity)
    return index, read_slot(store, channel_name, index)


def update_slot(
    store: KeyValueStore,
    authorizer: Authorizer,
    token: Optional[str],
    channel_name: str,
    index: str,
    updates: dict[str, Any],
) -> dict[str, Any]:
    """Overwrite only the fields present in ``updates``; ``""`` is a real value."""
    check_can_manage(authorizer, token, channel_name)
    _check_slot_exists(store, channel_name, index)

    writes: dict[str, str] = {}
    for field, value in updates.items():
        if field not in keys.SLOT_FIELDS:
            continue
        if field == "hour":
            if value is None or value == "":
                raise InvalidArgument("hour must be a non-negative integer")
            writes[field] = _normalize_hour(value)
        else:
            writes[field] = "" if value is None else str(value)

    with store.atomic():
        for field, value in writes.items():
            store.set(keys.slot_field_key(channel_name, index, field), value)

    logger.info("Updated slot %s on channel %s (%s)", index, channel_name, ", ".join(writes) or "no fields")
    return read_slot(store, channel_name, index)


def delete_slot(
    store: KeyValueStore,
    authorizer: Authorizer,
    token: Optional[str],
    channel_name: str,
    index: str,
) -> list[str]:
    """Delete a slot and compact the remaining indices to 0..N-1.

    All reads happen first; every write is issued inside one ``atomic()`` block
    so readers observe either the pre- or the post-compaction schedule.
    Returns the new slot index list.
    """
    check_can_manage(authorizer, token, channel_name)
    _check_slot_exists(store, channel_name, index)

    slots_key = keys.slots_key(channel_name)
    old_indices = store.list_range(slots_key)
    remaining = [i for i in old_indices if i != index]

    # Raw stored values, so absent fields stay absent after the move
    moved: list[dict[str, Optional[str]]] = []
    for old in remaining:
        field_keys = [keys.slot_field_key(channel_name, old, f) for f in keys.SLOT_FIELDS]
        moved.append(dict(zip(keys.SLOT_FIELDS, store.get_many(field_keys))))

    new_indices = [str(n) for n in range(len(remaining))]
    with store.atomic():
        store.delete(*[keys.slot_field_key(channel_name, index, f) for f in keys.SLOT_FIELDS])
        store.list_remove(slots_key, index)
        # Old records are cleared before any is rewritten under its new index
        store.delete(*[
            keys.slot_field_key(channel_name, old, f) for old in remaining for f in keys.SLOT_FIELDS
        ])
        for new, record in zip(new_indices, moved):
            for field, value in record.items():
                if value is not None:
                    store.set(keys.slot_field_key(channel_name, new, field), value)
        store.delete(slots_key)
        if new_indices:
            store.list_append(slots_key, *new_indices)

    logger.info("Deleted slot %s from channel %s; %d slots remain", index, channel_name, len(new_indices))
    return new_indices


def set_metadata(
    store: KeyValueStore,
    authorizer: Authorizer,
    token: Optional[str],
    channel_name: str,
    updates: dict[str, Any],
) -> dict[str, str]:
    """Partial metadata update with the same present/absent semantics as slots."""
    check_can_manage(authorizer, token, channel_name)
    _check_channel_exists(store, channel_name)

    writes = {
        field: ("" if value is None else str(value))
        for field, value in updates.items()
        if field in keys.METADATA_FIELDS
    }
    for field in ("startDate", "endDate"):
        if writes.get(field):
            _check_format(field, writes[field], "%Y-%m-%d", "YYYY-MM-DD")
    for field in ("startTime", "endTime"):
        if writes.get(field):
            _check_format(field, writes[field], "%H:%M", "HH:MM (24-hour)")

    with store.atomic():
        for field, value in writes.items():
            store.set(keys.schedule_field_key(channel_name, field), value)

    logger.info("Updated schedule metadata for %s (%s)", channel_name, ", ".join(writes) or "no fields")
    return read_metadata(store, channel_name)


def set_categories(
    store: KeyValueStore,
    authorizer: Authorizer,
    token: Optional[str],
    channel_name: str,
    categories: dict[str, list[str]],
) -> dict[str, list[str]]:
    """Replace the whole categories map (no per-key merge)."""
    check_can_manage(authorizer, token, channel_name)
    _check_channel_exists(store, channel_name)

    for name, style in categories.items():
        if not name:
            raise InvalidArgument("Category names must be non-empty")
        if len(style) != 4 or not all(isinstance(part, str) for part in style):
            raise InvalidArgument(f"Category '{name}' must have exactly 4 style tokens")

    store.set(keys.categories_key(channel_name), json.dumps(categories))
    logger.info("Replaced %d categories for %s", len(categories), channel_name)
    return categories
