"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class AuthenticatedUser(BaseModel):
    """
    Represents an authenticated user in the system.

    This model is populated from session token claims and made available
    to route handlers via dependency injection.

    Guests carry no email; they authenticate with the session token they
    received when they redeemed a join token.
    """

    id: str = Field(..., description="User ID (UUID)")
    email: Optional[EmailStr] = Field(None, description="User's email address")
    is_guest: bool = Field(default=False, description="Whether this is an ephemeral guest")
    issued_at: Optional[datetime] = Field(None, description="When the session token was issued")

    model_config = {
        "frozen": True,
        "extra": "ignore",
    }
