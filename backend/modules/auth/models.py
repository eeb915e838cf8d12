"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from typing import Optional
from pydantic import BaseModel, Field


class SessionClaims(BaseModel):
    """
    Decoded session token payload.

    Session tokens are issued when a user redeems a join token and are
    presented as bearer credentials on every later request.
    """

    sub: str = Field(..., description="Subject (user ID)")
    email: Optional[str] = Field(None, description="User's email, absent for guests")
    is_guest: bool = Field(default=False, alias="isGuest", description="Guest identity flag")
    exp: int = Field(..., description="Expiration timestamp")
    iat: int = Field(..., description="Issued at timestamp")

    model_config = {"populate_by_name": True, "extra": "ignore"}
