import smtplib
from typing import Any

import httpx
import pytest

from ticketdesk.core.config import Settings
from ticketdesk.core.errors import NotificationError
from ticketdesk.services import notifications
from ticketdesk.services.notifications import (
    LoggingAdminNotifier,
    NtfyAdminNotifier,
    SmtpAdminNotifier,
    build_admin_notifier,
)


class _DummyResponse:
    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            request = httpx.Request("POST", "https://ntfy.example/alerts")
            raise httpx.HTTPStatusError(
                "server error",
                request=request,
                response=httpx.Response(self.status_code, request=request),
            )


class _DummyClient:
    last_call: dict[str, Any] | None = None
    status_code: int = 200

    def __init__(self, *args, **kwargs):
        self.kwargs = kwargs

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def post(self, endpoint, *, content, headers):
        _DummyClient.last_call = {
            "endpoint": endpoint,
            "content": content,
            "headers": headers,
        }
        return _DummyResponse(_DummyClient.status_code)

    @classmethod
    def reset(cls):
        cls.last_call = None
        cls.status_code = 200


class _DummySMTP:
    last_kwargs: dict[str, Any] | None = None
    send_calls: list[dict[str, Any]] = []
    login_args: tuple[str, str] | None = None
    starttls_called: bool = False
    quit_called: bool = False

    def __init__(self, *, host=None, port=None, timeout=None, context=None, **kwargs):
        _DummySMTP.last_kwargs = {
            "host": host,
            "port": port,
            "timeout": timeout,
        }
        if context is not None:
            _DummySMTP.last_kwargs["context"] = context

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        _DummySMTP.quit_called = True
        return False

    def ehlo(self):
        return None

    def starttls(self, *, context=None):
        _DummySMTP.starttls_called = True

    def login(self, username, password):
        _DummySMTP.login_args = (username, password)

    def send_message(self, message, from_addr, to_addrs):
        _DummySMTP.send_calls.append(
            {
                "message": message,
                "sender": from_addr,
                "recipients": list(to_addrs),
            }
        )
        return {}

    @classmethod
    def reset(cls):
        cls.last_kwargs = None
        cls.send_calls = []
        cls.login_args = None
        cls.starttls_called = False
        cls.quit_called = False


class _FailingSMTP(_DummySMTP):
    def send_message(self, message, from_addr, to_addrs):
        raise smtplib.SMTPRecipientsRefused({"admin@example.com": (550, b"nope")})


@pytest.fixture(autouse=True)
def reset_dummies():
    _DummySMTP.reset()
    _DummyClient.reset()
    yield
    _DummySMTP.reset()
    _DummyClient.reset()


def _smtp_settings(**overrides) -> Settings:
    values = {
        "admin_alert_channel": "smtp",
        "admin_email": "admin@example.com; oncall@example.com",
        "smtp_host": "smtp.example.com",
        "smtp_port": 2525,
        "smtp_sender": "desk@example.com",
        "smtp_username": "desk",
        "smtp_password": "secret",
    }
    values.update(overrides)
    return Settings(**values)


def test_smtp_alert_sends_message_with_starttls(monkeypatch):
    monkeypatch.setattr(notifications.smtplib, "SMTP", _DummySMTP)
    notifier = build_admin_notifier(_smtp_settings())
    assert isinstance(notifier, SmtpAdminNotifier)

    notifier.send_admin_alert("Database Crash", "alice")

    assert _DummySMTP.last_kwargs["host"] == "smtp.example.com"
    assert _DummySMTP.last_kwargs["port"] == 2525
    assert _DummySMTP.starttls_called is True
    assert _DummySMTP.login_args == ("desk", "secret")
    assert _DummySMTP.quit_called is True

    assert len(_DummySMTP.send_calls) == 1
    call = _DummySMTP.send_calls[0]
    assert call["sender"] == "desk@example.com"
    assert call["recipients"] == ["admin@example.com", "oncall@example.com"]
    message = call["message"]
    assert message["Subject"] == "High priority ticket: Database Crash"
    assert message["X-TicketDesk-Assignee"] == "alice"
    assert "Assigned to: alice" in message.get_content()


def test_smtp_alert_prefers_implicit_ssl(monkeypatch):
    monkeypatch.setattr(notifications.smtplib, "SMTP_SSL", _DummySMTP)
    notifier = SmtpAdminNotifier.from_settings(
        _smtp_settings(smtp_use_ssl=True, smtp_use_tls=True, smtp_port=465)
    )

    notifier.send_admin_alert("Outage", "alice")

    assert notifier.use_tls is False
    assert _DummySMTP.starttls_called is False
    assert "context" in _DummySMTP.last_kwargs
    assert len(_DummySMTP.send_calls) == 1


def test_smtp_alert_without_recipients_raises():
    notifier = SmtpAdminNotifier.from_settings(_smtp_settings(admin_email=None))
    with pytest.raises(NotificationError):
        notifier.send_admin_alert("Outage", "alice")


def test_smtp_alert_delivery_failure_raises(monkeypatch):
    monkeypatch.setattr(notifications.smtplib, "SMTP", _FailingSMTP)
    notifier = SmtpAdminNotifier.from_settings(_smtp_settings())

    with pytest.raises(NotificationError) as excinfo:
        notifier.send_admin_alert("Outage", "alice")
    assert isinstance(excinfo.value.__cause__, smtplib.SMTPException)


def test_ntfy_alert_sanitizes_headers(monkeypatch):
    monkeypatch.setattr(httpx, "Client", _DummyClient)
    notifier = build_admin_notifier(
        Settings(
            admin_alert_channel="ntfy",
            ntfy_base_url="https://ntfy.example/",
            ntfy_topic="alerts",
            ntfy_token="secret-token",
        )
    )
    assert isinstance(notifier, NtfyAdminNotifier)

    notifier.send_admin_alert("Café — Failure", "zoë")

    captured = _DummyClient.last_call
    assert captured["endpoint"] == "https://ntfy.example/alerts"
    assert "Title: Café — Failure" in captured["content"].decode("utf-8")
    headers = captured["headers"]
    assert headers["Authorization"] == "Bearer secret-token"
    assert headers["Title"] == "High priority ticket: Cafe - Failure"
    assert headers["X-TicketDesk-Assignee"] == "zoe"


def test_ntfy_alert_http_error_raises(monkeypatch):
    monkeypatch.setattr(httpx, "Client", _DummyClient)
    _DummyClient.status_code = 503
    notifier = NtfyAdminNotifier(base_url="https://ntfy.example", topic="alerts")

    with pytest.raises(NotificationError):
        notifier.send_admin_alert("Outage", "alice")


def test_ntfy_alert_without_topic_raises():
    notifier = NtfyAdminNotifier(base_url="https://ntfy.example", topic=None)
    with pytest.raises(NotificationError):
        notifier.send_admin_alert("Outage", "alice")


def test_logging_notifier_records_alert(caplog):
    notifier = build_admin_notifier(Settings(admin_alert_channel="log"))
    assert isinstance(notifier, LoggingAdminNotifier)

    with caplog.at_level("WARNING", logger="ticketdesk.services.notifications"):
        notifier.send_admin_alert("Outage", "alice")

    assert "Outage" in caplog.text
    assert "alice" in caplog.text


def test_unknown_alert_channel_is_rejected():
    with pytest.raises(ValueError):
        build_admin_notifier(Settings(admin_alert_channel="pigeon"))


def test_smtp_alert_folds_line_breaks_in_headers(monkeypatch):
    monkeypatch.setattr(notifications.smtplib, "SMTP", _DummySMTP)
    notifier = SmtpAdminNotifier.from_settings(_smtp_settings())

    notifier.send_admin_alert("Server Crash\nsecond line", "ali\r\nce")

    message = _DummySMTP.send_calls[0]["message"]
    assert message["Subject"] == "High priority ticket: Server Crash second line"
    assert message["X-TicketDesk-Assignee"] == "ali ce"
    assert "Title: Server Crash\nsecond line" in message.get_content()


def test_smtp_alert_message_errors_raise_notification_error(monkeypatch):
    monkeypatch.setattr(notifications.smtplib, "SMTP", _DummySMTP)
    notifier = SmtpAdminNotifier.from_settings(_smtp_settings())

    def _broken_message(title, assigned_to_username):
        raise ValueError("Header values may not contain linefeed characters")

    monkeypatch.setattr(notifier, "build_message", _broken_message)

    with pytest.raises(NotificationError) as excinfo:
        notifier.send_admin_alert("Outage", "alice")
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert _DummySMTP.send_calls == []
