"""Session resolution for bearer tokens.

Sessions are issued by the authentication collaborator, which registers them
here; the order service only resolves tokens and checks roles.
"""

import threading

from .errors import Forbidden, Unauthorized
from .schemas import Order, Session


def parse_bearer(header: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header.

    Raises:
        Unauthorized: If the header is missing or malformed.
    """
    if not header or not header.startswith("Bearer "):
        raise Unauthorized("No token provided, authorization denied")
    token = header[len("Bearer ") :].strip()
    if not token:
        raise Unauthorized("No token provided, authorization denied")
    return token


class SessionRegistry:
    """Token to session lookup table."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def register(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.token] = session

    def resolve(self, token: str) -> Session:
        with self._lock:
            session = self._sessions.get(token)
        if session is None:
            raise Unauthorized("Invalid token")
        return session

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


def require_staff(session: Session) -> Session:
    if not session.is_staff:
        raise Forbidden("Access denied. Admin privileges required.")
    return session


def require_owner_or_staff(session: Session, order: Order) -> None:
    if order.user_id != session.user_id and not session.is_staff:
        raise Forbidden("Access denied")
