# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Session schemas."""
import datetime
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict


class SessionLocation(BaseModel):
    """Approximate location of a session's IP address."""

    model_config = ConfigDict(from_attributes=True)

    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None
    isp: Optional[str] = None


class SessionResponse(BaseModel):
    """Schema for an active session."""

    id: uuid.UUID
    ip_address: str
    device: Optional[str] = None
    browser: Optional[str] = None
    platform: Optional[str] = None
    location: SessionLocation
    last_active: datetime.datetime
    created_at: datetime.datetime
    is_current: bool


class SessionsTerminatedResponse(BaseModel):
    """Result of terminating several sessions."""

    message: str
    terminated_count: int
