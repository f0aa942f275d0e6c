from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserAccount(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    username: str = Column(String(255), unique=True, nullable=False, index=True)
    first_name: str = Column(String(255), nullable=False, default="")
    last_name: str = Column(String(255), nullable=False, default="")
    email: str | None = Column(String(255), nullable=True)
    created_at: datetime = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class TicketEntry(Base):
    __tablename__ = "tickets"

    id: int = Column(Integer, primary_key=True, autoincrement=True, index=True)
    title: str = Column(String(255), nullable=False)
    description: str = Column(Text, nullable=False)
    assigned_username: str = Column(
        String(255),
        ForeignKey("users.username"),
        nullable=False,
        index=True,
    )
    priority: str = Column(String(16), nullable=False)
    created_at: datetime = Column(DateTime(timezone=True), nullable=False)
    price_dollars: float = Column(Float, nullable=False, default=0)
    account_manager_username: str | None = Column(
        String(255),
        ForeignKey("users.username"),
        nullable=True,
    )
    updated_at: datetime = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    assigned_user = relationship(
        UserAccount,
        foreign_keys=[assigned_username],
        lazy="joined",
    )
    account_manager = relationship(
        UserAccount,
        foreign_keys=[account_manager_username],
        lazy="joined",
    )
