from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr

from ticketdesk.core.tickets import Priority

Username = constr(strip_whitespace=True, min_length=1, max_length=255)
NameText = constr(strip_whitespace=True, max_length=255)


class UserBase(BaseModel):
    username: Username
    first_name: NameText = ""
    last_name: NameText = ""
    email: Optional[EmailStr] = None


class UserCreate(UserBase):
    pass


class UserRead(UserBase):
    model_config = ConfigDict(from_attributes=True)


class TicketCreate(BaseModel):
    # Empty titles and descriptions are rejected by the ticket rules.
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=4096)
    priority: Priority = Priority.LOW
    assigned_to: Optional[str] = Field(default=None, max_length=255)
    created_at: Optional[datetime] = None
    is_paying_customer: bool = False


class TicketAssign(BaseModel):
    username: Optional[str] = Field(default=None, max_length=255)


class TicketRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    assigned_user: UserRead
    priority: Priority
    created_at: datetime
    price_dollars: float
    account_manager: Optional[UserRead] = None


class TicketCreateResponse(BaseModel):
    detail: str
    ticket_id: int
    ticket: TicketRead
