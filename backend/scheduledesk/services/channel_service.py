"""Channel registry: creation, cascade deletion, listing, and channel login."""
import json
import logging
import secrets
from typing import Any, Optional

from scheduledesk.config import settings
from scheduledesk.errors import Conflict, InvalidArgument, NotFound, Unauthorized
from scheduledesk.services.auth_service import (
    Authorizer,
    check_admin,
    hash_password,
    normalize_channel_name,
    verify_password,
)
from scheduledesk.services.schedule_query_service import read_metadata
from scheduledesk.services.timer_service import current_time_ms
from scheduledesk.store import keys
from scheduledesk.store.base import KeyValueStore

logger = logging.getLogger(__name__)


def create_channel(
    store: KeyValueStore,
    authorizer: Authorizer,
    token: Optional[str],
    channel_name: str,
    password: str,
) -> dict[str, Any]:
    """Register a channel with empty schedule metadata (admin only)."""
    check_admin(authorizer, token)
    channel_name = normalize_channel_name(channel_name)
    if not channel_name:
        raise InvalidArgument("channelName is required")
    if not password:
        raise InvalidArgument("password is required")
    if store.set_contains(keys.CHANNELS_KEY, channel_name):
        raise Conflict(f"Channel '{channel_name}' already exists")

    with store.atomic():
        store.set(keys.channel_password_key(channel_name), hash_password(password))
        for field in keys.METADATA_FIELDS:
            store.set(keys.schedule_field_key(channel_name, field), "")
        store.set(keys.categories_key(channel_name), json.dumps({}))
        store.set_add(keys.CHANNELS_KEY, channel_name)

    logger.info("Created channel %s", channel_name)
    return _channel_summary(store, channel_name)


def delete_channel(
    store: KeyValueStore,
    authorizer: Authorizer,
    token: Optional[str],
    channel_name: str,
) -> None:
    """Remove a channel with its schedule keys, password and sessions (admin only)."""
    check_admin(authorizer, token)
    channel_name = normalize_channel_name(channel_name)
    if not store.set_contains(keys.CHANNELS_KEY, channel_name):
        raise NotFound(f"Channel '{channel_name}' not found")

    indices = store.list_range(keys.slots_key(channel_name))
    sessions = store.set_members(keys.channel_sessions_key(channel_name))
    doomed = [keys.schedule_field_key(channel_name, f) for f in keys.METADATA_FIELDS]
    doomed += [keys.categories_key(channel_name), keys.slots_key(channel_name)]
    doomed += [keys.slot_field_key(channel_name, i, f) for i in indices for f in keys.SLOT_FIELDS]
    doomed.append(keys.channel_password_key(channel_name))
    doomed += [keys.channel_session_key(channel_name, s) for s in sessions]
    doomed.append(keys.channel_sessions_key(channel_name))

    with store.atomic():
        store.delete(*doomed)
        store.set_remove(keys.CHANNELS_KEY, channel_name)

    logger.info("Deleted channel %s (%d slots)", channel_name, len(indices))


def _channel_summary(store: KeyValueStore, channel_name: str) -> dict[str, Any]:
    metadata = read_metadata(store, channel_name)
    return {
        "channelName": channel_name,
        "date": metadata["date"],
        "startDate": metadata["startDate"],
        "startTime": metadata["startTime"],
        "slotCount": len(store.list_range(keys.slots_key(channel_name))),
    }


def list_channels(store: KeyValueStore) -> list[dict[str, Any]]:
    """Every registered channel with a short schedule summary, sorted by name."""
    return [_channel_summary(store, name) for name in sorted(store.set_members(keys.CHANNELS_KEY))]


def _expired_sessions(store: KeyValueStore, channel_name: str, now_ms: int) -> list[str]:
    tokens = sorted(store.set_members(keys.channel_sessions_key(channel_name)))
    if not tokens:
        return []
    values = store.get_many([keys.channel_session_key(channel_name, t) for t in tokens])
    expired = []
    for token, value in zip(tokens, values):
        try:
            if value is None or now_ms > int(value):
                expired.append(token)
        except ValueError:
            expired.append(token)
    return expired


def login(
    store: KeyValueStore,
    channel_name: str,
    password: str,
    now_ms: Optional[int] = None,
) -> dict[str, Any]:
    """Verify the channel password and issue a session token scoped to the channel."""
    channel_name = normalize_channel_name(channel_name)
    if not channel_name or not password:
        raise InvalidArgument("channelName and password are required")

    stored = store.get(keys.channel_password_key(channel_name))
    if not stored:
        raise Unauthorized("Channel not found. Please contact admin to create your channel.")
    if not verify_password(password, stored):
        logger.warning("Failed login for channel %s", channel_name)
        raise Unauthorized("Invalid password")

    now_ms = current_time_ms() if now_ms is None else now_ms
    session_token = secrets.token_urlsafe(32)
    expires_at = now_ms + settings.CHANNEL_SESSION_TTL_SECONDS * 1000
    expired = _expired_sessions(store, channel_name, now_ms)

    with store.atomic():
        for stale in expired:
            store.delete(keys.channel_session_key(channel_name, stale))
            store.set_remove(keys.channel_sessions_key(channel_name), stale)
        store.set(keys.channel_session_key(channel_name, session_token), str(expires_at))
        store.set_add(keys.channel_sessions_key(channel_name), session_token)

    logger.info("Issued session for channel %s (pruned %d expired)", channel_name, len(expired))
    return {"sessionToken": session_token, "expiresAt": expires_at, "channelName": channel_name}
