from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from trustly.db.enums import ModerationStatusEnum


class PhotoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    testimonial_id: str
    photo_url: str
    status: ModerationStatusEnum
    uploaded_at: datetime
    approved_at: Optional[datetime] = None


class VideoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    testimonial_id: str
    video_url: str
    status: ModerationStatusEnum
    uploaded_at: datetime
    approved_at: Optional[datetime] = None


class TestimonialOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    campaign_id: Optional[str] = None
    name: str
    email: Optional[str] = None
    rating: int
    text: str = ""
    status: ModerationStatusEnum
    photo_url: Optional[str] = None
    custom_answers: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class TestimonialWithCampaignOut(TestimonialOut):
    campaign_name: Optional[str] = None


class PublicTestimonialOut(BaseModel):
    id: str
    name: str
    rating: int
    text: str
    created_at: datetime
    photos: list[str] = Field(default_factory=list)
    videos: list[str] = Field(default_factory=list)


class StatusUpdateRequest(BaseModel):
    status: ModerationStatusEnum
