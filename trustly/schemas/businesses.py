from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PRIMARY_COLOR = "#4FD1C5"
DEFAULT_SECONDARY_COLOR = "#38B2AC"


class BusinessOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    business_name: str
    brand_color: Optional[str] = None
    logo_url: Optional[str] = None
    custom_colors: Optional[dict[str, Any]] = None
    custom_logo_url: Optional[str] = None
    show_branding: bool = True
    notification_email: Optional[str] = None
    notify_new_testimonial: bool = True
    notify_on_approval: bool = False
    email_enabled: bool = True
    created_at: datetime


class BusinessUpdateRequest(BaseModel):
    business_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    brand_color: Optional[str] = Field(default=None, max_length=32)
    logo_url: Optional[str] = None


class BrandingSettings(BaseModel):
    primary_color: str = DEFAULT_PRIMARY_COLOR
    secondary_color: str = DEFAULT_SECONDARY_COLOR
    custom_logo_url: Optional[str] = None
    show_branding: bool = True


class EmailSettings(BaseModel):
    notification_email: Optional[str] = Field(default=None, max_length=255)
    notify_new_testimonial: bool = True
    notify_on_approval: bool = False
    email_enabled: bool = True


class PublicBranding(BaseModel):
    id: str
    business_name: str
    logo_url: Optional[str] = None
    brand_color: Optional[str] = None
    primary_color: str
    secondary_color: str
    custom_logo_url: Optional[str] = None
    show_branding: bool = True
