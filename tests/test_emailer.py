from __future__ import annotations

import json
from dataclasses import replace

import httpx
import pytest

from storefront.emailer import EmailConfig, EmailJsSender, send_order
from storefront.errors import EmailNotConfigured, EmailSendError, StoreError

CONFIG = EmailConfig(
    service_id="service_abc",
    template_id="template_xyz",
    public_key="public-key",
    recipient_email="orders@caterer.example",
)


def _sender(handler, config: EmailConfig = CONFIG) -> EmailJsSender:
    return EmailJsSender(config, transport=httpx.MockTransport(handler))


def test_send_posts_emailjs_payload():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text="OK")

    _sender(handler).send("<p>order</p>", "Dana", "dana@example.com")

    assert len(requests) == 1
    request = requests[0]
    assert str(request.url) == "https://api.emailjs.com/api/v1.0/email/send"
    body = json.loads(request.content)
    assert body == {
        "service_id": "service_abc",
        "template_id": "template_xyz",
        "user_id": "public-key",
        "template_params": {
            "customer_name": "Dana",
            "customer_email": "dana@example.com",
            "to_email": "orders@caterer.example",
            "email_html": "<p>order</p>",
        },
    }


def test_private_key_and_blank_customer_defaults():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200)

    config = replace(CONFIG, private_key="secret")
    _sender(handler, config).send("<p/>", "", "")

    assert bodies[0]["accessToken"] == "secret"
    assert bodies[0]["template_params"]["customer_name"] == "Customer"
    assert bodies[0]["template_params"]["customer_email"] == "noreply@example.com"


def test_api_error_is_retryable():
    sender = _sender(lambda request: httpx.Response(400, text="The template ID is invalid"))

    with pytest.raises(EmailSendError) as excinfo:
        sender.send("<p/>", "Dana", "dana@example.com")

    assert excinfo.value.status_code == 400
    assert excinfo.value.retryable
    assert "template ID" in str(excinfo.value)


def test_network_error_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    with pytest.raises(EmailSendError):
        _sender(handler).send("<p/>", "Dana", "dana@example.com")


def test_incomplete_config_refuses_to_send():
    called = []
    config = EmailConfig(service_id="s", template_id="t", public_key="", recipient_email="r@example.com")
    sender = _sender(lambda request: called.append(request) or httpx.Response(200), config)

    with pytest.raises(EmailNotConfigured):
        sender.send("<p/>", "Dana", "dana@example.com")
    assert called == []


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("EMAILJS_SERVICE_ID", " svc ")
    monkeypatch.setenv("EMAILJS_TEMPLATE_ID", "tpl")
    monkeypatch.setenv("EMAILJS_PUBLIC_KEY", "pub")
    monkeypatch.setenv("ORDER_RECIPIENT_EMAIL", "to@example.com")
    monkeypatch.delenv("EMAILJS_PRIVATE_KEY", raising=False)

    config = EmailConfig.from_env()

    assert config.service_id == "svc"
    assert config.private_key == ""
    assert config.is_complete


def test_send_order_saves_after_success(engine, history):
    engine.set_customer_details(name="Dana", email="dana@example.com")
    engine.set_quantity("a", 6)

    result = send_order(engine, _sender(lambda request: httpx.Response(200)), "<p/>")

    assert result.save_error is None
    saved = history.get(result.order_id)
    assert saved.email_sent_to == "orders@caterer.example"
    assert engine.current_order_id == result.order_id


def test_send_failure_saves_nothing(engine, history):
    engine.set_quantity("a", 6)

    with pytest.raises(EmailSendError):
        send_order(engine, _sender(lambda request: httpx.Response(500, text="down")), "<p/>")

    assert history.orders == []
    assert engine.current_order_id is None


def test_history_failure_after_send_is_reported(engine, monkeypatch):
    def broken_append(_snapshot):
        raise StoreError("Could not save order: disk I/O error")

    monkeypatch.setattr(engine.history, "append", broken_append)
    engine.set_quantity("a", 6)

    result = send_order(engine, _sender(lambda request: httpx.Response(200)), "<p/>")

    assert result.order_id is None
    assert "disk I/O error" in result.save_error
