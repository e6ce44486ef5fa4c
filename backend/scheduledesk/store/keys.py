"""Key layout shared by every store backend.

Keys are namespaced ``{domain}:{channel}:{...}`` so the channel registry, the
schedule, and the timer can share one physical store. The layout matches the
keys already written by the production Redis deployment.
"""

# =========================
# CHANNEL REGISTRY
# =========================

# Set of registered channel names
CHANNELS_KEY = "24hour:channels"


def channel_password_key(channel: str) -> str:
    return f"24hour:channel:{channel}:password"


def channel_session_key(channel: str, token: str) -> str:
    # value: session expiry, epoch milliseconds
    return f"24hour:channel:{channel}:session:{token}"


def channel_sessions_key(channel: str) -> str:
    # Set of session tokens issued for the channel
    return f"24hour:channel:{channel}:sessions"


# =========================
# SCHEDULE
# =========================

METADATA_FIELDS = ("date", "startDate", "endDate", "startTime", "endTime")
SLOT_FIELDS = ("hour", "time", "category", "activity", "description")


def schedule_field_key(channel: str, field: str) -> str:
    return f"24hour:schedule:{channel}:{field}"


def categories_key(channel: str) -> str:
    # value: JSON object {name: [4 display tokens]}
    return f"24hour:schedule:{channel}:categories"


def slots_key(channel: str) -> str:
    # Ordered list of slot indices ("0", "1", ...)
    return f"24hour:schedule:{channel}:slots"


def slot_field_key(channel: str, index: str, field: str) -> str:
    return f"24hour:schedule:{channel}:slot:{index}:{field}"


# =========================
# TIMER
# =========================

TIMER_FIELDS = ("duration", "startTime", "pausedAt", "isRunning")


def timer_field_key(channel: str, field: str) -> str:
    return f"widget:timer:{channel}:{field}"
