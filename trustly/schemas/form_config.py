from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class FormField(BaseModel):
    enabled: bool = True
    required: Optional[bool] = None
    label: str
    placeholder: Optional[str] = None


def _field(label: str, *, required: Optional[bool] = None, placeholder: Optional[str] = None):
    return Field(default_factory=lambda: FormField(label=label, required=required, placeholder=placeholder))


class FormFields(BaseModel):
    name: FormField = _field("Your Name", required=True, placeholder="John Doe")
    email: FormField = _field("Email", required=False, placeholder="you@example.com")
    rating: FormField = _field("How would you rate your experience?", required=True)
    text: FormField = _field("Your Testimonial", required=False, placeholder="Share your experience...")
    photo: FormField = _field("Add Photos")
    video: FormField = _field("Add Video")


DEFAULT_RATING_EMOJIS = {
    "1": "😞 Needs Improvement",
    "2": "😐 Fair",
    "3": "👍 Good!",
    "4": "😊 Great!",
    "5": "⭐ Excellent!",
}


class FormCustomization(BaseModel):
    title: str = ""
    description: str = ""
    submitButtonText: str = "Submit Testimonial"
    successTitle: str = "Thank You!"
    successMessage: str = "Your testimonial has been submitted successfully and is awaiting approval."
    ratingEmojis: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_RATING_EMOJIS))


class FormStyling(BaseModel):
    primaryColor: str = "#4FD1C5"
    secondaryColor: str = "#38B2AC"
    fontFamily: str = "Inter"
    borderRadius: str = "12px"
    showLogo: bool = True
    showPoweredBy: bool = True


class FormConfig(BaseModel):
    fields: FormFields = Field(default_factory=FormFields)
    customization: FormCustomization = Field(default_factory=FormCustomization)
    styling: FormStyling = Field(default_factory=FormStyling)
