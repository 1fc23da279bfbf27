"""Tenant and ownership checks shared by the domain services"""

from typing import Any

from sqlalchemy.orm import Query

from .auth import CurrentUser
from .exceptions import ForbiddenError
from .models import Client


def can_access_client(user: CurrentUser, client: Any) -> bool:
    """Admins see every client in their org; care managers only their own."""
    if user.is_care_manager:
        return client is not None and client.primary_cm_id == user.user_id
    return True


def ensure_client_access(user: CurrentUser, client: Any, message: str = "You are not allowed to access this client.") -> None:
    if not can_access_client(user, client):
        raise ForbiddenError(message)


def scope_to_owned_clients(query: Query, user: CurrentUser) -> Query:
    """
    Restrict a query that already joins Client to the caller's own clients.
    No-op for admins.
    """
    if user.is_care_manager:
        return query.filter(Client.primary_cm_id == user.user_id)
    return query
