from __future__ import annotations

from typing import Any, Optional

from trustly.db.models import Campaign
from trustly.schemas.form_config import FormConfig


def default_form_config() -> dict[str, Any]:
    return FormConfig().model_dump()


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def effective_form_config(stored: Optional[dict[str, Any]]) -> FormConfig:
    """Stored configuration layered over the defaults at every nesting level."""
    if not stored:
        return FormConfig()
    return FormConfig.model_validate(_deep_merge(default_form_config(), stored))


def campaign_form_config(campaign: Campaign) -> FormConfig:
    return effective_form_config(campaign.form_config)


def serialize_form_config(config: FormConfig) -> dict[str, Any]:
    return config.model_dump()
