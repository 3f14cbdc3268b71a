"""
Schemas for organization and membership endpoints.
"""
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class OrganizationStatusUpdate(BaseModel):
    status: Optional[str] = Field(None, description="New organization status")


class MemberRegistrationRequest(BaseModel):
    """Self-registration of a member on an organization's public page."""
    organization_uuid: Optional[str] = None
    email: Optional[EmailStr] = Field(None, description="Member email address")
    name: Optional[str] = Field(None, max_length=255, description="Full name")
    title: Optional[str] = Field(None, max_length=255, description="Job title")
