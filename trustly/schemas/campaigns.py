from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trustly.db.enums import RecipientStatusEnum


class CustomQuestion(BaseModel):
    question: str = Field(min_length=1, max_length=500)
    required: bool = False

    @field_validator("question")
    @classmethod
    def strip_question(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Question text is required")
        return value


class CampaignCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    welcome_video_url: Optional[str] = None
    video_autoplay: bool = True
    custom_questions: list[CustomQuestion] = Field(default_factory=list)
    allow_video: bool = True
    allow_photo: bool = True
    allow_text: bool = True
    allow_rating: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Campaign name is required")
        return value


class CampaignUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    welcome_video_url: Optional[str] = None
    video_autoplay: Optional[bool] = None
    custom_questions: Optional[list[CustomQuestion]] = None
    allow_video: Optional[bool] = None
    allow_photo: Optional[bool] = None
    allow_text: Optional[bool] = None
    allow_rating: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Campaign name is required")
        return value


class CampaignOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    name: str
    description: Optional[str] = None
    welcome_video_url: Optional[str] = None
    video_autoplay: bool = True
    custom_questions: list[dict[str, Any]] = Field(default_factory=list)
    allow_video: bool = True
    allow_photo: bool = True
    allow_text: bool = True
    allow_rating: bool = True
    unique_slug: str
    form_config: Optional[dict[str, Any]] = None
    total_sent: int = 0
    total_submitted: int = 0
    created_at: datetime
    updated_at: datetime


class RecipientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    campaign_id: str
    customer_name: str
    customer_email: str
    status: RecipientStatusEnum
    sent_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    created_at: datetime


class CampaignStats(BaseModel):
    total: int
    approved: int
    pending: int
    rejected: int
    average_rating: float
    total_sent: int
    total_submitted: int
