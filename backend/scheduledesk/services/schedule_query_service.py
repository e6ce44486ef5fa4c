"""Read-only composition of a channel's schedule snapshot.

Available without authorization. Nothing here validates, clamps, or
synthesizes: absent fields read as empty, and only slots whose index is in the
channel's slot list are surfaced.
"""
import json
import logging
from typing import Any, Optional

from scheduledesk.store import keys
from scheduledesk.store.base import KeyValueStore

logger = logging.getLogger(__name__)


def _parse_hour(raw: Optional[str]) -> int:
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring malformed stored hour %r", raw)
        return 0


def read_categories(store: KeyValueStore, channel_name: str) -> dict[str, Any]:
    """Stored categories JSON, or ``{}`` when absent or corrupted."""
    raw = store.get(keys.categories_key(channel_name)) or "{}"
    try:
        categories = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse categories for %s: %s", channel_name, exc)
        return {}
    if not isinstance(categories, dict):
        logger.warning("Stored categories for %s is not an object", channel_name)
        return {}
    return categories


def read_metadata(store: KeyValueStore, channel_name: str) -> dict[str, str]:
    field_keys = [keys.schedule_field_key(channel_name, f) for f in keys.METADATA_FIELDS]
    values = store.get_many(field_keys)
    return {field: value or "" for field, value in zip(keys.METADATA_FIELDS, values)}


def read_slot(store: KeyValueStore, channel_name: str, index: str) -> dict[str, Any]:
    field_keys = [keys.slot_field_key(channel_name, index, f) for f in keys.SLOT_FIELDS]
    raw = dict(zip(keys.SLOT_FIELDS, store.get_many(field_keys)))
    return {
        "hour": _parse_hour(raw["hour"]),
        "time": raw["time"] or "",
        "category": raw["category"] or "",
        "activity": raw["activity"] or "",
        "description": raw["description"] or "",
    }


def get_schedule(store: KeyValueStore, channel_name: str) -> dict[str, Any]:
    """Metadata, ordered slots, and categories for ``channel_name``.

    An unknown channel yields the same shape with every field empty.
    """
    indices = store.list_range(keys.slots_key(channel_name))
    snapshot: dict[str, Any] = {"channelName": channel_name}
    snapshot.update(read_metadata(store, channel_name))
    snapshot["timeSlots"] = [read_slot(store, channel_name, index) for index in indices]
    snapshot["categories"] = read_categories(store, channel_name)
    return snapshot
