from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    business_name: Optional[str] = None

    @field_validator("business_name")
    @classmethod
    def check_business_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            return None
        if len(value) < 2:
            raise ValueError("Business name must be at least 2 characters")
        return value


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
