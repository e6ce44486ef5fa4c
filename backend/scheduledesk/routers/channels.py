"""Channel registry API routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, status

from scheduledesk.dependencies import get_authorizer, get_bearer_token, get_store
from scheduledesk.schemas.channel import ChannelCreate, ChannelLogin, ChannelOut, ChannelSessionOut
from scheduledesk.services import channel_service
from scheduledesk.services.auth_service import Authorizer
from scheduledesk.store.base import KeyValueStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[ChannelOut])
def list_channels(store: KeyValueStore = Depends(get_store)):
    """List every channel with a short schedule summary."""
    return channel_service.list_channels(store)


@router.post("/", response_model=ChannelOut, status_code=status.HTTP_201_CREATED)
def create_channel(
    payload: ChannelCreate,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    """Create a channel (admin only)."""
    return channel_service.create_channel(store, authorizer, token, payload.channelName, payload.password)


@router.delete("/{channel_name}", status_code=status.HTTP_204_NO_CONTENT)
def delete_channel(
    channel_name: str,
    store: KeyValueStore = Depends(get_store),
    authorizer: Authorizer = Depends(get_authorizer),
    token: Optional[str] = Depends(get_bearer_token),
):
    """Delete a channel and its whole schedule (admin only)."""
    channel_service.delete_channel(store, authorizer, token, channel_name)


@router.post("/{channel_name}/login", response_model=ChannelSessionOut)
def login(channel_name: str, payload: ChannelLogin, store: KeyValueStore = Depends(get_store)):
    """Exchange the channel password for a session token."""
    return channel_service.login(store, channel_name, payload.password)
