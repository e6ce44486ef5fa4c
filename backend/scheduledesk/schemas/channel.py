"""Pydantic schemas for the channel registry."""
from __future__ import annotations
from pydantic import BaseModel


class ChannelCreate(BaseModel):
    channelName: str
    password: str


class ChannelOut(BaseModel):
    channelName: str
    date: str = ""
    startDate: str = ""
    startTime: str = ""
    slotCount: int = 0


class ChannelLogin(BaseModel):
    password: str


class ChannelSessionOut(BaseModel):
    sessionToken: str
    expiresAt: int
    channelName: str
