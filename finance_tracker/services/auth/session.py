"""
Session Context

Holds the signed-in user for one browser session (or one worker).
It is passed explicitly to every operation that needs the current
user; there is no process-wide "current user".

Listeners are told about every sign-in, sign-out and profile change.
"""

from typing import Callable, Optional

import structlog

from finance_tracker.models.records import UserProfile


logger = structlog.get_logger(__name__)

SessionListener = Callable[[Optional[UserProfile]], None]


class AuthError(Exception):
    """Not signed in, bad credentials, or a rejected account change."""
    pass


class SessionContext:
    """
    The current user of one session.

    Usage:
        session = SessionContext()
        unsubscribe = session.subscribe(lambda user: print(user))
        await auth.sign_in(session, email, password)
        user = session.require_user()
    """

    def __init__(self, user: Optional[UserProfile] = None):
        self._user = user
        self._listeners: list[SessionListener] = []

    @property
    def user(self) -> Optional[UserProfile]:
        return self._user

    @property
    def uid(self) -> Optional[str]:
        return self._user.uid if self._user else None

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def set_user(self, user: Optional[UserProfile]) -> None:
        """Replace the current user and notify listeners if it changed."""
        if user == self._user:
            return
        self._user = user
        for listener in list(self._listeners):
            listener(user)

    def clear(self) -> None:
        self.set_user(None)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Observe the session.

        The listener is called immediately with the current user, then on
        every change. Returns a function that removes the listener.
        """
        self._listeners.append(listener)
        listener(self._user)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def require_user(self, message: str = "You must be logged in") -> UserProfile:
        """Return the signed-in user or raise AuthError(message)."""
        if self._user is None:
            logger.info("auth_required", reason=message)
            raise AuthError(message)
        return self._user
