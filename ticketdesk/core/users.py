from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ticketdesk.core.config import get_settings
from ticketdesk.core.db import get_session_factory
from ticketdesk.core.errors import ApplicationError, UnknownUserError
from ticketdesk.models import UserAccount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class User:
    username: str
    first_name: str = ""
    last_name: str = ""
    email: str | None = None

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.last_name]
        return " ".join(part for part in parts if part) or self.username


def user_from_model(model: UserAccount) -> User:
    return User(
        username=model.username,
        first_name=model.first_name or "",
        last_name=model.last_name or "",
        email=model.email,
    )


class UserDirectory:
    """User lookups backed by the ``users`` table."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def _session_factory(self) -> sessionmaker[Session]:
        return get_session_factory()

    def _normalized(self, username: str | None) -> str:
        if not username:
            return ""
        return username.strip()

    def get_user(self, username: str | None) -> User | None:
        key = self._normalized(username)
        if not key:
            return None
        session_factory = self._session_factory()
        with session_factory() as session:
            result = session.execute(
                select(UserAccount).where(UserAccount.username == key)
            )
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return user_from_model(model)

    def get_account_manager(self) -> User:
        username = get_settings().account_manager_username
        manager = self.get_user(username)
        if manager is None:
            raise UnknownUserError(f"Account manager {username} not found")
        return manager

    def add_user(
        self,
        *,
        username: str,
        first_name: str = "",
        last_name: str = "",
        email: str | None = None,
    ) -> User:
        """Register a user so tickets can be assigned to them."""

        key = self._normalized(username)
        if not key:
            raise ApplicationError("Username must not be empty")

        with self._lock:
            session_factory = self._session_factory()
            with session_factory() as session:
                model = UserAccount(
                    username=key,
                    first_name=first_name.strip(),
                    last_name=last_name.strip(),
                    email=email.strip() if email else None,
                )
                session.add(model)
                try:
                    session.commit()
                except IntegrityError as exc:
                    session.rollback()
                    raise ApplicationError(f"User {key} already exists") from exc
                session.refresh(model)
                logger.info("Registered user '%s'.", key)
                return user_from_model(model)

    def list_users(self) -> list[User]:
        session_factory = self._session_factory()
        with session_factory() as session:
            result = session.execute(select(UserAccount).order_by(UserAccount.username))
            return [user_from_model(model) for model in result.scalars().all()]

    def reset(self) -> None:
        """Remove every registered user (useful for tests)."""

        with self._lock:
            session_factory = self._session_factory()
            with session_factory() as session:
                session.execute(delete(UserAccount))
                session.commit()


user_directory = UserDirectory()
