"""Pydantic schemas for the stream countdown timer."""
from __future__ import annotations
from typing import Optional
from pydantic import BaseModel


class TimerDurationSet(BaseModel):
    hours: int = 0
    minutes: int = 0
    startImmediately: bool = False


class TimerAdjust(BaseModel):
    deltaMinutes: int


class TimerSnapshotOut(BaseModel):
    remainingMs: int
    isRunning: bool
    isExpired: bool
    formattedTime: str


class TimerStateOut(BaseModel):
    durationMs: int
    startTimeMs: Optional[int] = None
    pausedAtMs: Optional[int] = None
    isRunning: bool


class TimerOut(BaseModel):
    channelName: str
    state: TimerStateOut
    snapshot: TimerSnapshotOut
