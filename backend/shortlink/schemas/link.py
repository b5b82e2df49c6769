from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class LinkCreate(BaseModel):
    """Schema for creating a new short link"""
    original_url: str = Field(..., alias="originalUrl", min_length=1, max_length=2048)
    custom_slug: Optional[str] = Field(
        None, alias="customSlug", min_length=3, max_length=50, pattern=r'^\s*[a-zA-Z0-9_-]+\s*$'
    )
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    tags: List[str] = Field(default_factory=list)
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")

    class Config:
        populate_by_name = True


class LinkUpdate(BaseModel):
    """Schema for updating a link. Omitted fields are left unchanged."""
    original_url: Optional[str] = Field(None, alias="originalUrl", min_length=1, max_length=2048)
    custom_slug: Optional[str] = Field(None, alias="customSlug", min_length=3, max_length=50)
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    tags: Optional[List[str]] = None
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    is_active: Optional[bool] = Field(None, alias="isActive")

    class Config:
        populate_by_name = True


class ClickCreate(BaseModel):
    """Schema for an owner-recorded click"""
    ip_address: Optional[str] = Field(None, alias="ipAddress", max_length=45)
    user_agent: Optional[str] = Field(None, alias="userAgent")
    referer: Optional[str] = None

    class Config:
        populate_by_name = True
