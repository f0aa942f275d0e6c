from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "TicketDesk"
    database_url: str = Field(
        default="sqlite:///./ticketdesk.db",
        description="SQLAlchemy database URL",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level applied to the ticketdesk logger",
        validation_alias="TICKETDESK_LOG_LEVEL",
    )
    account_manager_username: str = Field(
        default="sarah",
        description="Username of the account manager assigned to paying customers",
        validation_alias="TICKETDESK_ACCOUNT_MANAGER",
    )
    admin_alert_channel: str = Field(
        default="log",
        description="Delivery channel for high priority alerts: smtp, ntfy or log",
        validation_alias="TICKETDESK_ADMIN_ALERT_CHANNEL",
    )
    admin_email: str | None = Field(
        default=None,
        description="Administrator email addresses, comma or semicolon separated",
        validation_alias="TICKETDESK_ADMIN_EMAIL",
    )
    smtp_host: str | None = Field(
        default=None,
        description="SMTP host used for administrator alerts",
        validation_alias="TICKETDESK_SMTP_HOST",
    )
    smtp_port: int = Field(
        default=587,
        description="SMTP port",
        validation_alias="TICKETDESK_SMTP_PORT",
    )
    smtp_username: str | None = Field(
        default=None,
        description="SMTP username",
        validation_alias="TICKETDESK_SMTP_USERNAME",
    )
    smtp_password: str | None = Field(
        default=None,
        description="SMTP password",
        validation_alias="TICKETDESK_SMTP_PASSWORD",
    )
    smtp_sender: str | None = Field(
        default=None,
        description="SMTP sender email address",
        validation_alias="TICKETDESK_SMTP_SENDER",
    )
    smtp_use_tls: bool = Field(
        default=True,
        description="Enable STARTTLS when connecting to SMTP",
        validation_alias="TICKETDESK_SMTP_USE_TLS",
    )
    smtp_use_ssl: bool = Field(
        default=False,
        description="Use implicit TLS when connecting to SMTP",
        validation_alias="TICKETDESK_SMTP_USE_SSL",
    )
    ntfy_base_url: str | None = Field(
        default=None,
        description="ntfy server base URL",
        validation_alias="TICKETDESK_NTFY_BASE_URL",
    )
    ntfy_topic: str | None = Field(
        default=None,
        description="ntfy topic for administrator alerts",
        validation_alias="TICKETDESK_NTFY_TOPIC",
    )
    ntfy_token: str | None = Field(
        default=None,
        description="ntfy access token",
        validation_alias="TICKETDESK_NTFY_TOKEN",
    )

    @property
    def admin_recipients(self) -> list[str]:
        if not self.admin_email:
            return []
        tokens = [token.strip() for token in self.admin_email.replace(";", ",").split(",")]
        return [token for token in tokens if token]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
