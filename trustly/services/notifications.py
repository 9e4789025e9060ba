from __future__ import annotations

import logging
from typing import Optional

from trustly.db.models import Business, Testimonial
from trustly.services.email import EmailClient, EmailDeliveryError, format_sender
from trustly.services.email_templates import render_notice

logger = logging.getLogger(__name__)


def _recipient(business: Business) -> Optional[str]:
    if not business.email_enabled:
        return None
    address = (business.notification_email or "").strip()
    return address or None


def _deliver(client: EmailClient, business: Business, *, to: str, subject: str, html: str) -> bool:
    try:
        client.send(sender=format_sender("Trustly"), to=[to], subject=subject, html=html)
    except EmailDeliveryError:
        logger.exception(
            "Notification delivery failed",
            extra={"business_id": business.id, "subject": subject},
        )
        return False
    return True


def notify_new_testimonial(client: EmailClient, business: Business, testimonial: Testimonial) -> bool:
    """Email the business owner about a fresh submission. Never raises on delivery failure."""
    to = _recipient(business)
    if not to or not business.notify_new_testimonial:
        return False
    subject = f"New Testimonial from {testimonial.name}"
    paragraphs = [f"{testimonial.name} left a {testimonial.rating}-star testimonial."]
    if testimonial.text:
        paragraphs.append(testimonial.text)
    paragraphs.append("Review it in your dashboard to approve or reject it.")
    html = render_notice(
        business_name=business.business_name,
        brand_color=business.brand_color,
        heading=subject,
        paragraphs=paragraphs,
    )
    return _deliver(client, business, to=to, subject=subject, html=html)


def notify_testimonial_approved(client: EmailClient, business: Business, testimonial: Testimonial) -> bool:
    to = _recipient(business)
    if not to or not business.notify_on_approval:
        return False
    subject = "Testimonial approved"
    html = render_notice(
        business_name=business.business_name,
        brand_color=business.brand_color,
        heading=subject,
        paragraphs=[f"{testimonial.name}'s testimonial is now live"],
    )
    return _deliver(client, business, to=to, subject=subject, html=html)


def send_test_notification(client: EmailClient, business: Business, to: str) -> None:
    """Send a settings test email; delivery errors propagate to the caller."""
    subject = "Trustly test notification"
    html = render_notice(
        business_name=business.business_name,
        brand_color=business.brand_color,
        heading=subject,
        paragraphs=["Email notifications are set up correctly for your business."],
    )
    client.send(sender=format_sender("Trustly"), to=[to], subject=subject, html=html)
