from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from ticketdesk.core.errors import ApplicationError, UnknownUserError
from ticketdesk.core.users import user_directory
from ticketdesk.schemas import UserCreate, UserRead

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate) -> UserRead:
    try:
        user = user_directory.add_user(**payload.model_dump())
    except ApplicationError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return UserRead.model_validate(user)


@router.get("/", response_model=list[UserRead])
def list_users() -> list[UserRead]:
    return [UserRead.model_validate(user) for user in user_directory.list_users()]


@router.get("/{username}", response_model=UserRead)
def read_user(username: str) -> UserRead:
    user = user_directory.get_user(username)
    if user is None:
        raise UnknownUserError(f"User {username} not found")
    return UserRead.model_validate(user)
