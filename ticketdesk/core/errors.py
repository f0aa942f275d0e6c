from __future__ import annotations


class ApplicationError(Exception):
    """Base error raised by the ticket rules and their collaborators."""


class InvalidTicketError(ApplicationError):
    """Raised when a ticket is missing its title or description."""


class UnknownUserError(ApplicationError):
    """Raised when a username cannot be resolved in the user directory."""


class TicketNotFoundError(ApplicationError):
    """Raised when no ticket exists for the requested id."""


class NotificationError(ApplicationError):
    """Raised when an administrator alert cannot be delivered."""
