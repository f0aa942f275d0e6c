"""TicketDesk ticket creation and assignment rules."""
