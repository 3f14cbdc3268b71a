"""
Authentication schemas.

Tokens are issued and checked by the auth backend; these models only describe
what the gateway forwards.
"""
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


# ============== Token Schemas ==============

class VerifyCodeRequest(BaseModel):
    """Passwordless login: the code e-mailed to the user."""
    email: Optional[EmailStr] = Field(None, description="User email address")
    code: Optional[str] = Field(None, description="One-time verification code")


class RefreshTokenRequest(BaseModel):
    """Refresh token request."""
    refresh_token: Optional[str] = None

