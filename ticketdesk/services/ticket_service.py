"""Ticket creation and assignment rules."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Protocol

from ticketdesk.core.errors import (
    InvalidTicketError,
    TicketNotFoundError,
    UnknownUserError,
)
from ticketdesk.core.tickets import Priority, Ticket, as_utc
from ticketdesk.core.users import User
from ticketdesk.models import utcnow

logger = logging.getLogger(__name__)

MAGIC_WORDS = ("Crash", "Important", "Failure")
ESCALATION_AGE = timedelta(hours=1)
PAYING_PRICE = 50.0
PAYING_HIGH_PRIORITY_PRICE = 100.0


class UserDirectory(Protocol):
    def get_user(self, username: str | None) -> User | None: ...

    def get_account_manager(self) -> User: ...


class NotificationSender(Protocol):
    def send_admin_alert(self, title: str, assigned_to_username: str) -> None: ...


class TicketStore(Protocol):
    def create(self, ticket: Ticket) -> int: ...

    def get_by_id(self, ticket_id: int) -> Ticket | None: ...

    def update(self, ticket: Ticket) -> None: ...


class TicketService:
    """Apply the ticket business rules on top of injected collaborators.

    ``clock`` supplies the evaluation time used for age based escalation and
    must return an aware UTC datetime.
    """

    def __init__(
        self,
        users: UserDirectory,
        notifier: NotificationSender,
        tickets: TicketStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._users = users
        self._notifier = notifier
        self._tickets = tickets
        self._clock = clock

    def create_ticket(
        self,
        title: str | None,
        priority: Priority,
        assigned_to_username: str | None,
        description: str | None,
        created_at: datetime,
        is_paying_customer: bool,
    ) -> int:
        """Validate, prioritise, price and store a new ticket.

        Returns the id assigned by the ticket store. Raises
        ``InvalidTicketError`` for a missing title or description and
        ``UnknownUserError`` when the assignee cannot be resolved. Errors from
        the notification sender propagate and leave nothing stored.
        """

        self._check_title_and_description(title, description)
        user = self._get_user_or_raise(assigned_to_username)

        priority = self._raise_priority_if_needed(Priority(priority), title, created_at)
        if priority is Priority.HIGH:
            logger.info(
                "Sending admin alert for high priority ticket '%s' assigned to '%s'.",
                title,
                user.username,
            )
            self._notifier.send_admin_alert(title, user.username)

        price, account_manager = self._price_and_account_manager(
            is_paying_customer, priority
        )

        ticket = Ticket(
            title=title,
            description=description,
            assigned_user=user,
            priority=priority,
            created_at=created_at,
            price_dollars=price,
            account_manager=account_manager,
        )
        ticket_id = self._tickets.create(ticket)
        logger.info(
            "Created ticket %s (%s priority) for %s (%s).",
            ticket_id,
            priority.value,
            user.full_name,
            user.username,
        )
        return ticket_id

    def assign_ticket(self, ticket_id: int, username: str | None) -> None:
        user = self._get_user_or_raise(username)

        ticket = self._tickets.get_by_id(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"No ticket found for id {ticket_id}")

        ticket.assigned_user = user
        self._tickets.update(ticket)
        logger.info(
            "Assigned ticket %s to %s (%s).", ticket_id, user.full_name, user.username
        )

    def _check_title_and_description(
        self, title: str | None, description: str | None
    ) -> None:
        if not title or not description:
            logger.debug("Rejected ticket with empty title or description.")
            raise InvalidTicketError("Title or description were null or empty")

    def _get_user_or_raise(self, username: str | None) -> User:
        user = self._users.get_user(username) if username else None
        if user is None:
            logger.debug("Rejected unknown user '%s'.", username)
            raise UnknownUserError(f"User {username} not found")
        return user

    def _raise_priority_if_needed(
        self, priority: Priority, title: str, created_at: datetime
    ) -> Priority:
        is_old = as_utc(created_at) < as_utc(self._clock()) - ESCALATION_AGE
        has_magic_word = any(word in title for word in MAGIC_WORDS)
        if not (is_old or has_magic_word):
            return priority
        raised = priority.raised()
        if raised is not priority:
            logger.info(
                "Escalated ticket '%s' from %s to %s.",
                title,
                priority.value,
                raised.value,
            )
        return raised

    def _price_and_account_manager(
        self, is_paying_customer: bool, priority: Priority
    ) -> tuple[float, User | None]:
        if not is_paying_customer:
            return 0.0, None
        # Only paying customers have an account manager.
        account_manager = self._users.get_account_manager()
        if priority is Priority.HIGH:
            return PAYING_HIGH_PRIORITY_PRICE, account_manager
        return PAYING_PRICE, account_manager
