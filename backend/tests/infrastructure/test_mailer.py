"""SMTP mailer — TLS mode selection, multipart messages, failure mapping."""

import aiosmtplib
import pytest

from backstage.core.errors import EmailDeliveryError
from backstage.infrastructure import mailer as mailer_module
from backstage.infrastructure.mailer import SmtpMailer


@pytest.fixture
def sent(monkeypatch):
    """Captures aiosmtplib.send calls as (message, kwargs)."""
    calls = []

    async def fake_send(message, **kwargs):
        calls.append((message, kwargs))
        return {}, "OK"

    monkeypatch.setattr(mailer_module.aiosmtplib, "send", fake_send)
    return calls


async def test_unconfigured_mailer_refuses_to_send(sent):
    with pytest.raises(EmailDeliveryError):
        await SmtpMailer(None, None, None, None).send("a@b.c", "s", "<p>h</p>", "t")
    assert sent == []


async def test_submission_port_negotiates_starttls(sent):
    await SmtpMailer("smtp.test", 587, "site@fansite.test", "pw").send(
        "fan@example.com", "Hello", "<p>Hi</p>", "Hi",
    )

    [(message, kwargs)] = sent
    assert kwargs["hostname"] == "smtp.test"
    assert kwargs["username"] == "site@fansite.test"
    assert kwargs["use_tls"] is False
    assert kwargs["start_tls"] is None
    assert message["To"] == "fan@example.com"
    assert [part.get_content_type() for part in message.get_payload()] == ["text/plain", "text/html"]


async def test_implicit_tls_on_port_465(sent):
    await SmtpMailer("smtp.test", 465, "site@fansite.test", "pw").send("x@y.z", "s", "h", "t")

    [(_, kwargs)] = sent
    assert kwargs["use_tls"] is True
    assert kwargs["start_tls"] is False


async def test_smtp_failure_maps_to_delivery_error(monkeypatch):
    async def refuse(message, **kwargs):
        raise aiosmtplib.SMTPAuthenticationError(535, "bad credentials")

    monkeypatch.setattr(mailer_module.aiosmtplib, "send", refuse)
    with pytest.raises(EmailDeliveryError):
        await SmtpMailer("smtp.test", 587, "u", "p").send("x@y.z", "s", "h", "t")
