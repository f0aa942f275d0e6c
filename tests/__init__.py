"""Test suite for TicketDesk."""
