import httpx
import pytest

from trustly.db.models import Testimonial as SubmittedTestimonial
from trustly.services import email as email_service
from trustly.services.email import EmailClient, EmailDeliveryError, format_sender
from trustly.services.email_templates import render_invitation
from trustly.services.notifications import notify_new_testimonial


@pytest.fixture()
def mock_transport(monkeypatch):
    requests: list[httpx.Request] = []
    responses: list[httpx.Response] = []
    real_client = httpx.Client

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return responses.pop(0) if responses else httpx.Response(200, json={"id": "email-1"})

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(email_service.httpx, "Client", client_factory)
    return requests, responses


def test_send_posts_to_provider(mock_transport):
    requests, _ = mock_transport
    client = EmailClient(api_key="re_test", base_url="https://mail.example.com/")

    data = client.send(sender="Shop <hello@example.com>", to=["a@example.com"], subject="Hi", html="<p>Hi</p>")

    assert data == {"id": "email-1"}
    request = requests[0]
    assert str(request.url) == "https://mail.example.com/emails"
    assert request.headers["Authorization"] == "Bearer re_test"
    assert b'"subject":"Hi"' in request.content.replace(b" ", b"")


def test_send_raises_on_provider_error(mock_transport):
    _, responses = mock_transport
    responses.append(httpx.Response(422, text="invalid from"))
    client = EmailClient(api_key="re_test")

    with pytest.raises(EmailDeliveryError) as excinfo:
        client.send(sender="x@example.com", to=["a@example.com"], subject="Hi", html="")
    assert "422" in str(excinfo.value)


def test_send_requires_api_key(monkeypatch):
    monkeypatch.setattr(email_service.settings, "RESEND_API_KEY", None)
    with pytest.raises(EmailDeliveryError):
        EmailClient().send(sender="x@example.com", to=["a@example.com"], subject="Hi", html="")


def test_format_sender():
    assert format_sender("Acme <Bakery>") == "Acme Bakery <hello@trustly.example>"
    assert format_sender("  ") == "hello@trustly.example"


def test_invitation_escapes_customer_values():
    html = render_invitation(
        business_name="Tom & Co",
        brand_color=None,
        customer_name="<script>x</script>",
        link="https://app.example.com/submit?b=1&t=2",
    )

    assert "Tom &amp; Co" in html
    assert "<script>x</script>" not in html
    assert 'href="https://app.example.com/submit?b=1&amp;t=2"' in html


def test_new_testimonial_notification_failure_is_swallowed(business, fake_email):
    fake_email.fail_for.add("owner@example.com")
    testimonial = SubmittedTestimonial(name="Jane", rating=5, text="Nice")

    assert notify_new_testimonial(fake_email, business, testimonial) is False
    assert fake_email.sent == []
