from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class CustomerIn(BaseModel):
    name: str
    email: str

    @field_validator("name")
    @classmethod
    def require_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Customer name is required")
        return value

    @field_validator("email")
    @classmethod
    def require_email(cls, value: str) -> str:
        value = value.strip()
        if "@" not in value:
            raise ValueError("Customer email must contain '@'")
        return value


class EmailCampaignRequest(BaseModel):
    business_id: str
    campaign_name: str = Field(min_length=1, max_length=200)
    customers: list[CustomerIn] = Field(min_length=1)

    @field_validator("campaign_name")
    @classmethod
    def strip_campaign_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter a campaign name")
        return value


class EmailCampaignResponse(BaseModel):
    success: bool
    campaign_id: str
    sent_count: int
    total_customers: int
