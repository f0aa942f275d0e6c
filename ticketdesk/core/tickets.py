from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import delete
from sqlalchemy.orm import Session, sessionmaker

from ticketdesk.core.db import get_session_factory
from ticketdesk.core.errors import TicketNotFoundError
from ticketdesk.core.users import User, user_from_model
from ticketdesk.models import TicketEntry

logger = logging.getLogger(__name__)


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    def raised(self) -> "Priority":
        if self is Priority.LOW:
            return Priority.MEDIUM
        return Priority.HIGH


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime, treating naive values as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Ticket:
    title: str
    description: str
    assigned_user: User
    priority: Priority
    created_at: datetime
    price_dollars: float = 0
    account_manager: User | None = None
    id: int | None = None


class TicketStore:
    """Persistent ticket store backed by the ``tickets`` table."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def _session_factory(self) -> sessionmaker[Session]:
        return get_session_factory()

    def _ticket_from_model(self, model: TicketEntry) -> Ticket:
        account_manager = (
            user_from_model(model.account_manager)
            if model.account_manager is not None
            else None
        )
        return Ticket(
            id=model.id,
            title=model.title,
            description=model.description,
            assigned_user=user_from_model(model.assigned_user),
            priority=Priority(model.priority),
            created_at=as_utc(model.created_at),
            price_dollars=float(model.price_dollars or 0),
            account_manager=account_manager,
        )

    def create(self, ticket: Ticket) -> int:
        """Persist a new ticket and return the id assigned to it."""

        with self._lock:
            session_factory = self._session_factory()
            with session_factory() as session:
                record = TicketEntry(
                    title=ticket.title,
                    description=ticket.description,
                    assigned_username=ticket.assigned_user.username,
                    priority=ticket.priority.value,
                    created_at=as_utc(ticket.created_at),
                    price_dollars=ticket.price_dollars,
                    account_manager_username=(
                        ticket.account_manager.username
                        if ticket.account_manager
                        else None
                    ),
                )
                session.add(record)
                session.commit()
                ticket.id = record.id
                logger.debug("Stored ticket %s.", record.id)
                return record.id

    def get_by_id(self, ticket_id: int) -> Ticket | None:
        session_factory = self._session_factory()
        with session_factory() as session:
            record = session.get(TicketEntry, ticket_id)
            if record is None:
                return None
            return self._ticket_from_model(record)

    def update(self, ticket: Ticket) -> None:
        """Persist changes made to an existing ticket."""

        with self._lock:
            session_factory = self._session_factory()
            with session_factory() as session:
                record = (
                    session.get(TicketEntry, ticket.id)
                    if ticket.id is not None
                    else None
                )
                if record is None:
                    raise TicketNotFoundError(f"No ticket found for id {ticket.id}")
                record.title = ticket.title
                record.description = ticket.description
                record.assigned_username = ticket.assigned_user.username
                record.priority = ticket.priority.value
                record.price_dollars = ticket.price_dollars
                record.account_manager_username = (
                    ticket.account_manager.username if ticket.account_manager else None
                )
                session.commit()

    def reset(self) -> None:
        """Clear stored tickets (useful for tests)."""

        with self._lock:
            session_factory = self._session_factory()
            with session_factory() as session:
                session.execute(delete(TicketEntry))
                session.commit()


ticket_store = TicketStore()
