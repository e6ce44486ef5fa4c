"""Stream timer API routes: public snapshot, channel-scoped transitions."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends

from scheduledesk.dependencies import get_authorizer, get_bearer_token, get_store
from scheduledesk.schemas.timer import TimerAdjust, TimerDurationSet, TimerOut, TimerSnapshotOut
from scheduledesk.services import timer_service
from scheduledesk.services.auth_service import Authorizer, normalize_channel_name
from scheduledesk.store.base import KeyValueStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{channel_name}", response_model=TimerSnapshotOut)
def get_timer(channel_name: str, store: KeyValueStore = Depends(get_store)):
    """Live remaining time for browser-source widgets (polled, no token)."""
    return timer_service.get_snapshot(store, normalize_channel_name(channel_name))


@router.post("/{channel_name}/duration", response_model=TimerOut)
def set_duration(
    channel_name: str,
    payload: TimerDurationSet,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    return timer_service.set_duration(
        store,
        authorizer,
        token,
        normalize_channel_name(channel_name),
        hours=payload.hours,
        minutes=payload.minutes,
        start_immediately=payload.startImmediately,
    )


@router.post("/{channel_name}/start", response_model=TimerOut)
def start_timer(
    channel_name: str,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    return timer_service.start(store, authorizer, token, normalize_channel_name(channel_name))


@router.post("/{channel_name}/stop", response_model=TimerOut)
def stop_timer(
    channel_name: str,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    """Stop and keep the configured duration; a later start begins from it."""
    return timer_service.stop(store, authorizer, token, normalize_channel_name(channel_name))


@router.post("/{channel_name}/pause", response_model=TimerOut)
def pause_timer(
    channel_name: str,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    return timer_service.pause(store, authorizer, token, normalize_channel_name(channel_name))


@router.post("/{channel_name}/resume", response_model=TimerOut)
def resume_timer(
    channel_name: str,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    return timer_service.resume(store, authorizer, token, normalize_channel_name(channel_name))


@router.post("/{channel_name}/adjust", response_model=TimerOut)
def adjust_timer(
    channel_name: str,
    payload: TimerAdjust,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    """Add (or subtract) minutes from the remaining time, clamped at zero."""
    return timer_service.adjust(
        store, authorizer, token, normalize_channel_name(channel_name), payload.deltaMinutes
    )
