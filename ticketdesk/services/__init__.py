"""Service-layer rules and delivery adapters."""

from __future__ import annotations

__all__ = [
    "TicketService",
    "build_admin_notifier",
]

from .notifications import build_admin_notifier
from .ticket_service import TicketService
