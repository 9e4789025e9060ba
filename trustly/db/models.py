from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trustly.db.base import Base
from trustly.db.enums import ModerationStatusEnum, RecipientStatusEnum

JSONType = sa.JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def _status_enum(enum_cls, name: str) -> Enum:
    return Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


class Business(Base):
    __tablename__ = "businesses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    business_name: Mapped[str] = mapped_column(Text, nullable=False)
    brand_color: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, default="#4FD1C5")
    logo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    custom_colors: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    custom_logo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    show_branding: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notification_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notify_new_testimonial: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_on_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class Campaign(Base):
    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    business_id: Mapped[str] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    welcome_video_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    video_autoplay: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    custom_questions: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    allow_video: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allow_photo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allow_text: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allow_rating: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    unique_slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    form_config: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    total_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_submitted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    recipients: Mapped[list["CampaignRecipient"]] = relationship(
        back_populates="campaign", cascade="all, delete-orphan"
    )


class CampaignRecipient(Base):
    __tablename__ = "campaign_recipients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    campaign_id: Mapped[str] = mapped_column(
        ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    unique_token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    status: Mapped[RecipientStatusEnum] = mapped_column(
        _status_enum(RecipientStatusEnum, "recipient_status"),
        nullable=False,
        default=RecipientStatusEnum.pending,
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    campaign: Mapped[Campaign] = relationship(back_populates="recipients")


class Testimonial(Base):
    __tablename__ = "testimonials"
    __table_args__ = (
        sa.Index("idx_testimonials_business_created", "business_id", "created_at"),
        sa.Index("idx_testimonials_email_created", "email", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    business_id: Mapped[str] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    campaign_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("campaigns.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[ModerationStatusEnum] = mapped_column(
        _status_enum(ModerationStatusEnum, "moderation_status"),
        nullable=False,
        default=ModerationStatusEnum.pending,
    )
    photo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    custom_answers: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    campaign: Mapped[Optional[Campaign]] = relationship()
    photos: Mapped[list["TestimonialPhoto"]] = relationship(
        back_populates="testimonial",
        cascade="all, delete-orphan",
        order_by="TestimonialPhoto.uploaded_at.desc()",
    )
    videos: Mapped[list["TestimonialVideo"]] = relationship(
        back_populates="testimonial",
        cascade="all, delete-orphan",
        order_by="TestimonialVideo.uploaded_at.desc()",
    )


class TestimonialPhoto(Base):
    __tablename__ = "testimonial_photos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    testimonial_id: Mapped[str] = mapped_column(
        ForeignKey("testimonials.id", ondelete="CASCADE"), nullable=False, index=True
    )
    photo_url: Mapped[str] = mapped_column(Text, nullable=False)
    storage_key: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[ModerationStatusEnum] = mapped_column(
        _status_enum(ModerationStatusEnum, "moderation_status"),
        nullable=False,
        default=ModerationStatusEnum.pending,
    )
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    testimonial: Mapped[Testimonial] = relationship(back_populates="photos")


class TestimonialVideo(Base):
    __tablename__ = "testimonial_videos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    testimonial_id: Mapped[str] = mapped_column(
        ForeignKey("testimonials.id", ondelete="CASCADE"), nullable=False, index=True
    )
    video_url: Mapped[str] = mapped_column(Text, nullable=False)
    storage_key: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[ModerationStatusEnum] = mapped_column(
        _status_enum(ModerationStatusEnum, "moderation_status"),
        nullable=False,
        default=ModerationStatusEnum.pending,
    )
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    testimonial: Mapped[Testimonial] = relationship(back_populates="videos")
