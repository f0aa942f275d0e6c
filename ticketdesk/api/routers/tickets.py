from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from ticketdesk.core.errors import TicketNotFoundError
from ticketdesk.core.tickets import ticket_store
from ticketdesk.core.users import user_directory
from ticketdesk.models import utcnow
from ticketdesk.schemas import TicketAssign, TicketCreate, TicketCreateResponse, TicketRead
from ticketdesk.services import TicketService

router = APIRouter(prefix="/api/tickets", tags=["Tickets"])


def get_ticket_service(request: Request) -> TicketService:
    return TicketService(
        user_directory,
        request.app.state.admin_notifier,
        ticket_store,
    )


def _read_ticket(ticket_id: int) -> TicketRead:
    ticket = ticket_store.get_by_id(ticket_id)
    if ticket is None:
        raise TicketNotFoundError(f"No ticket found for id {ticket_id}")
    return TicketRead.model_validate(ticket)


@router.post("/", response_model=TicketCreateResponse, status_code=status.HTTP_201_CREATED)
def create_ticket(
    payload: TicketCreate,
    service: TicketService = Depends(get_ticket_service),
) -> TicketCreateResponse:
    ticket_id = service.create_ticket(
        payload.title,
        payload.priority,
        payload.assigned_to,
        payload.description,
        payload.created_at or utcnow(),
        payload.is_paying_customer,
    )
    return TicketCreateResponse(
        detail="Ticket created successfully.",
        ticket_id=ticket_id,
        ticket=_read_ticket(ticket_id),
    )


@router.get("/{ticket_id}", response_model=TicketRead)
def read_ticket(ticket_id: int) -> TicketRead:
    return _read_ticket(ticket_id)


@router.put("/{ticket_id}/assignment", response_model=TicketRead)
def assign_ticket(
    ticket_id: int,
    payload: TicketAssign,
    service: TicketService = Depends(get_ticket_service),
) -> TicketRead:
    service.assign_ticket(ticket_id, payload.username)
    return _read_ticket(ticket_id)
