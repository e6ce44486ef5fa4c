"""Schedule API routes: public reads, channel-scoped writes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, status

from scheduledesk.config import settings
from scheduledesk.dependencies import get_authorizer, get_bearer_token, get_store
from scheduledesk.schemas.schedule import (
    CategoriesOut,
    CategoriesUpdate,
    MetadataOut,
    MetadataUpdate,
    ScheduleOut,
    SlotCreate,
    SlotCreated,
    SlotOut,
    SlotUpdate,
)
from scheduledesk.services import schedule_query_service, schedule_service
from scheduledesk.services.auth_service import Authorizer, normalize_channel_name
from scheduledesk.store.base import KeyValueStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=ScheduleOut)
def get_default_schedule(store: KeyValueStore = Depends(get_store)):
    """Schedule for the configured default channel."""
    return schedule_query_service.get_schedule(store, normalize_channel_name(settings.DEFAULT_CHANNEL))


@router.get("/{channel_name}", response_model=ScheduleOut)
def get_schedule(channel_name: str, store: KeyValueStore = Depends(get_store)):
    """Full schedule snapshot; unknown channels return an empty schedule."""
    channel = normalize_channel_name(channel_name) or normalize_channel_name(settings.DEFAULT_CHANNEL)
    return schedule_query_service.get_schedule(store, channel)


@router.post("/{channel_name}/slots", response_model=SlotCreated, status_code=status.HTTP_201_CREATED)
def append_slot(
    channel_name: str,
    payload: SlotCreate,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    index, slot = schedule_service.append_slot(
        store,
        authorizer,
        token,
        normalize_channel_name(channel_name),
        hour=payload.hour,
        time=payload.time,
        category=payload.category,
        activity=payload.activity,
        description=payload.description,
    )
    return {"index": index, "slot": slot}


@router.patch("/{channel_name}/slots/{index}", response_model=SlotOut)
def update_slot(
    channel_name: str,
    index: str,
    payload: SlotUpdate,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    """Partial update: only fields present in the body are written."""
    return schedule_service.update_slot(
        store,
        authorizer,
        token,
        normalize_channel_name(channel_name),
        index,
        payload.model_dump(exclude_unset=True),
    )


@router.delete("/{channel_name}/slots/{index}", response_model=ScheduleOut)
def delete_slot(
    channel_name: str,
    index: str,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    """Delete a slot and return the compacted schedule."""
    channel = normalize_channel_name(channel_name)
    schedule_service.delete_slot(store, authorizer, token, channel, index)
    return schedule_query_service.get_schedule(store, channel)


@router.patch("/{channel_name}/metadata", response_model=MetadataOut)
def set_metadata(
    channel_name: str,
    payload: MetadataUpdate,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    channel = normalize_channel_name(channel_name)
    metadata = schedule_service.set_metadata(
        store, authorizer, token, channel, payload.model_dump(exclude_unset=True)
    )
    return {"channelName": channel, **metadata}


@router.put("/{channel_name}/categories", response_model=CategoriesOut)
def set_categories(
    channel_name: str,
    payload: CategoriesUpdate,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    """Replace the whole categories map."""
    channel = normalize_channel_name(channel_name)
    categories = schedule_service.set_categories(store, authorizer, token, channel, payload.categories)
    return {"channelName": channel, "categories": categories}
