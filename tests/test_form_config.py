from trustly.schemas.form_config import DEFAULT_RATING_EMOJIS, FormConfig
from trustly.services.form_config import default_form_config, effective_form_config, serialize_form_config


def test_missing_config_yields_defaults():
    config = effective_form_config(None)

    assert config.fields.name.label == "Your Name"
    assert config.fields.name.required is True
    assert config.fields.email.required is False
    assert config.customization.submitButtonText == "Submit Testimonial"
    assert config.customization.ratingEmojis == DEFAULT_RATING_EMOJIS
    assert config.styling.primaryColor == "#4FD1C5"


def test_partial_config_is_merged_over_defaults():
    stored = {
        "fields": {"email": {"required": True}},
        "customization": {"successTitle": "Cheers!", "ratingEmojis": {"5": "Perfect"}},
        "styling": {"borderRadius": "4px"},
    }

    config = effective_form_config(stored)

    assert config.fields.email.required is True
    assert config.fields.email.label == "Email"
    assert config.fields.email.placeholder == "you@example.com"
    assert config.fields.text.label == "Your Testimonial"
    assert config.customization.successTitle == "Cheers!"
    assert config.customization.successMessage.startswith("Your testimonial has been submitted")
    assert config.customization.ratingEmojis["5"] == "Perfect"
    assert config.customization.ratingEmojis["1"] == DEFAULT_RATING_EMOJIS["1"]
    assert config.styling.borderRadius == "4px"
    assert config.styling.fontFamily == "Inter"


def test_saved_config_reads_back_unchanged():
    config = FormConfig.model_validate(default_form_config())
    config.customization.title = "Tell us about your visit"
    config.fields.photo.enabled = False

    stored = serialize_form_config(config)

    assert effective_form_config(stored) == config


def test_form_config_endpoints(api_client, db_session, business):
    created = api_client.post("/campaigns", json={"name": "Configurable"})
    campaign_id = created.json()["id"]

    initial = api_client.get(f"/campaigns/{campaign_id}/form-config")
    assert initial.status_code == 200
    assert initial.json() == default_form_config()

    updated = initial.json()
    updated["customization"]["title"] = "Share your story"
    updated["fields"]["video"]["enabled"] = False
    saved = api_client.put(f"/campaigns/{campaign_id}/form-config", json=updated)
    assert saved.status_code == 200
    assert saved.json() == updated

    assert api_client.get(f"/campaigns/{campaign_id}/form-config").json() == updated
