"""Pydantic schemas for channel schedules."""
from __future__ import annotations
from typing import Any, Optional, Union
from pydantic import BaseModel


class SlotCreate(BaseModel):
    # Loosely typed so the service can answer with InvalidArgument instead of 422
    hour: Optional[Union[int, str]] = None
    time: str = ""
    category: str = ""
    activity: str = ""
    description: str = ""


class SlotUpdate(BaseModel):
    """Partial update: only fields present in the request body are written."""

    hour: Optional[Union[int, str]] = None
    time: Optional[str] = None
    category: Optional[str] = None
    activity: Optional[str] = None
    description: Optional[str] = None


class SlotOut(BaseModel):
    hour: int = 0
    time: str = ""
    category: str = ""
    activity: str = ""
    description: str = ""


class SlotCreated(BaseModel):
    index: str
    slot: SlotOut


class MetadataUpdate(BaseModel):
    date: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None


class MetadataOut(BaseModel):
    channelName: str
    date: str = ""
    startDate: str = ""
    endDate: str = ""
    startTime: str = ""
    endTime: str = ""


class CategoriesUpdate(BaseModel):
    categories: dict[str, list[str]]


class CategoriesOut(BaseModel):
    channelName: str
    categories: dict[str, Any] = {}


class ScheduleOut(BaseModel):
    channelName: str
    date: str = ""
    startDate: str = ""
    endDate: str = ""
    startTime: str = ""
    endTime: str = ""
    timeSlots: list[SlotOut] = []
    categories: dict[str, Any] = {}
