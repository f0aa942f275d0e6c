"""Administrator alert delivery for high priority tickets."""

from __future__ import annotations

import logging
import smtplib
import ssl
import unicodedata
from email.message import EmailMessage
from urllib.parse import quote

import httpx

from ticketdesk.core.config import Settings
from ticketdesk.core.errors import NotificationError

logger = logging.getLogger(__name__)


def _clean_str(value: object | None) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def _sanitize_header_value(value: str | None) -> str | None:
    """Return an ASCII-safe header value or ``None`` when empty."""

    if value is None:
        return None

    sanitized = value.replace("\r", " ").replace("\n", " ")
    # Unicode dashes become a plain hyphen.
    for dash in ("—", "–", "―", "−"):
        sanitized = sanitized.replace(dash, "-")

    normalized = unicodedata.normalize("NFKD", sanitized)
    ascii_value = normalized.encode("ascii", "ignore").decode("ascii")
    ascii_value = " ".join(ascii_value.split())
    return ascii_value or None


def _single_line(value: str) -> str:
    return " ".join(value.split())


def _alert_subject(title: str) -> str:
    return f"High priority ticket: {title}"


def _alert_body(title: str, assigned_to_username: str) -> str:
    return (
        f"A high priority ticket has been raised.\n\n"
        f"Title: {title}\n"
        f"Assigned to: {assigned_to_username}\n"
    )


class LoggingAdminNotifier:
    """Record administrator alerts in the log when no channel is configured."""

    def send_admin_alert(self, title: str, assigned_to_username: str) -> None:
        logger.warning(
            "High priority ticket '%s' assigned to '%s'.",
            title,
            assigned_to_username,
        )


class SmtpAdminNotifier:
    def __init__(
        self,
        *,
        host: str | None,
        port: int,
        sender: str | None,
        recipients: list[str],
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        use_ssl: bool = False,
        timeout: float = 15.0,
    ) -> None:
        self.host = _clean_str(host)
        self.port = port
        self.sender = _clean_str(sender)
        self.recipients = [r for r in (_clean_str(r) for r in recipients) if r]
        self.username = _clean_str(username)
        self.password = _clean_str(password)
        self.use_ssl = use_ssl
        self.use_tls = use_tls
        if use_ssl and use_tls:
            logger.warning(
                "SMTP alerts have both TLS and SSL enabled; defaulting to implicit SSL only."
            )
            self.use_tls = False
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpAdminNotifier":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.smtp_sender,
            recipients=settings.admin_recipients,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            use_ssl=settings.smtp_use_ssl,
        )

    def build_message(self, title: str, assigned_to_username: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = _single_line(_alert_subject(title))
        message["From"] = self.sender
        message["To"] = ", ".join(self.recipients)
        message["X-TicketDesk-Assignee"] = _single_line(assigned_to_username)
        message.set_content(_alert_body(title, assigned_to_username))
        return message

    def send_admin_alert(self, title: str, assigned_to_username: str) -> None:
        if not self.host or not self.sender or not self.recipients:
            raise NotificationError(
                "SMTP alerts are missing host, sender, or recipient configuration."
            )

        ssl_context = ssl.create_default_context()

        try:
            message = self.build_message(title, assigned_to_username)
            if self.use_ssl:
                smtp_client = smtplib.SMTP_SSL(
                    host=self.host,
                    port=self.port,
                    timeout=self.timeout,
                    context=ssl_context,
                )
            else:
                smtp_client = smtplib.SMTP(
                    host=self.host, port=self.port, timeout=self.timeout
                )

            with smtp_client as client:
                client.ehlo()
                if self.use_tls:
                    client.starttls(context=ssl_context)
                    client.ehlo()
                if self.username and self.password:
                    client.login(self.username, self.password)
                refused = client.send_message(
                    message,
                    from_addr=self.sender,
                    to_addrs=self.recipients,
                )
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            logger.warning("Failed to send SMTP alert for '%s': %s", title, exc)
            raise NotificationError(f"Failed to send SMTP alert: {exc}") from exc

        if refused:
            logger.warning(
                "SMTP alert for '%s' was refused for %s.", title, ", ".join(refused)
            )
        logger.info(
            "Sent SMTP alert for '%s' to %s.", title, ", ".join(self.recipients)
        )


class NtfyAdminNotifier:
    def __init__(
        self,
        *,
        base_url: str | None,
        topic: str | None,
        token: str | None = None,
        timeout: httpx.Timeout | None = None,
    ) -> None:
        self.base_url = _clean_str(base_url)
        self.topic = _clean_str(topic)
        self.token = _clean_str(token)
        self.timeout = timeout or httpx.Timeout(10.0, connect=5.0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "NtfyAdminNotifier":
        return cls(
            base_url=settings.ntfy_base_url,
            topic=settings.ntfy_topic,
            token=settings.ntfy_token,
        )

    @property
    def endpoint(self) -> str:
        normalized_base = (self.base_url or "").rstrip("/")
        normalized_topic = quote((self.topic or "").strip("/"), safe="/-_.~")
        return f"{normalized_base}/{normalized_topic}"

    def send_admin_alert(self, title: str, assigned_to_username: str) -> None:
        if not self.base_url or not self.topic:
            raise NotificationError("ntfy alerts are missing base URL or topic configuration.")

        headers: dict[str, str] = {"Content-Type": "text/plain; charset=utf-8"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        header_title = _sanitize_header_value(_alert_subject(title))
        if header_title:
            headers["Title"] = header_title
        headers["Priority"] = "high"
        assignee_header = _sanitize_header_value(assigned_to_username)
        if assignee_header:
            headers["X-TicketDesk-Assignee"] = assignee_header

        body = _alert_body(title, assigned_to_username)
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    self.endpoint, content=body.encode("utf-8"), headers=headers
                )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to send ntfy alert for '%s': %s", title, exc)
            raise NotificationError(f"Failed to send ntfy alert: {exc}") from exc

        logger.info("Sent ntfy alert for '%s' to topic '%s'.", title, self.topic)


def build_admin_notifier(
    settings: Settings,
) -> LoggingAdminNotifier | SmtpAdminNotifier | NtfyAdminNotifier:
    channel = (settings.admin_alert_channel or "").strip().lower()
    if channel == "smtp":
        return SmtpAdminNotifier.from_settings(settings)
    if channel == "ntfy":
        return NtfyAdminNotifier.from_settings(settings)
    if channel == "log":
        return LoggingAdminNotifier()
    raise ValueError(f"Unknown admin alert channel: {settings.admin_alert_channel!r}")
