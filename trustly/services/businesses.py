from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from trustly.config import settings
from trustly.db.models import Business
from trustly.db.repositories.campaigns import CampaignsRepository
from trustly.db.repositories.testimonials import TestimonialsRepository
from trustly.schemas.businesses import (
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_SECONDARY_COLOR,
    BrandingSettings,
    EmailSettings,
    PublicBranding,
)


def branding_for(business: Business) -> BrandingSettings:
    colors = business.custom_colors or {}
    return BrandingSettings(
        primary_color=colors.get("primary") or business.brand_color or DEFAULT_PRIMARY_COLOR,
        secondary_color=colors.get("secondary") or DEFAULT_SECONDARY_COLOR,
        custom_logo_url=business.custom_logo_url,
        show_branding=business.show_branding if business.show_branding is not None else True,
    )


def branding_fields(branding: BrandingSettings) -> dict:
    """Column values for a branding save; brand_color mirrors the primary colour."""
    return {
        "brand_color": branding.primary_color,
        "custom_colors": {"primary": branding.primary_color, "secondary": branding.secondary_color},
        "custom_logo_url": (branding.custom_logo_url or "").strip() or None,
        "show_branding": branding.show_branding,
    }


def public_branding(business: Business) -> PublicBranding:
    branding = branding_for(business)
    return PublicBranding(
        id=business.id,
        business_name=business.business_name,
        logo_url=business.logo_url,
        brand_color=business.brand_color,
        primary_color=branding.primary_color,
        secondary_color=branding.secondary_color,
        custom_logo_url=branding.custom_logo_url,
        show_branding=branding.show_branding,
    )


def email_settings_for(business: Business) -> EmailSettings:
    return EmailSettings(
        notification_email=business.notification_email,
        notify_new_testimonial=business.notify_new_testimonial,
        notify_on_approval=business.notify_on_approval,
        email_enabled=business.email_enabled,
    )


def email_settings_fields(payload: EmailSettings) -> dict:
    return {
        "notification_email": (payload.notification_email or "").strip() or None,
        "notify_new_testimonial": payload.notify_new_testimonial,
        "notify_on_approval": payload.notify_on_approval,
        "email_enabled": payload.email_enabled,
    }


def widget_snippet(business: Business) -> dict[str, str]:
    base = settings.app_base_url
    return {
        "business_id": business.id,
        "embed_code": f'<script src="{base}/widget.js" data-business-id="{business.id}"></script>',
        "submission_link": f"{base}/submit?b={business.id}",
    }


def response_rate(total_sent: int, total_submitted: int) -> Optional[int]:
    if total_sent <= 0:
        return None
    return round(total_submitted / total_sent * 100)


def dashboard_summary(session: Session, business: Business) -> dict:
    campaigns = CampaignsRepository(session).list(business.id)
    counts = TestimonialsRepository(session).count_by_status(business.id)
    total_sent = sum(c.total_sent or 0 for c in campaigns)
    total_submitted = sum(c.total_submitted or 0 for c in campaigns)
    return {
        "business_id": business.id,
        "business_name": business.business_name,
        "total_testimonials": sum(counts.values()),
        "pending_testimonials": counts["pending"],
        "approved_testimonials": counts["approved"],
        "rejected_testimonials": counts["rejected"],
        "campaign_count": len(campaigns),
        "total_sent": total_sent,
        "total_submitted": total_submitted,
        "response_rate": response_rate(total_sent, total_submitted),
    }
