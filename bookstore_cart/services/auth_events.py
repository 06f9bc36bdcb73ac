"""
Auth state stream.

Sign-in and sign-out happen outside this service. Whatever observes them
publishes an ``AuthState`` here and every subscriber is awaited in turn, so
cart and wishlist reloads run as plain method calls.
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthState:
    user_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    @classmethod
    def signed_out(cls) -> "AuthState":
        return cls(user_id=None)

    @classmethod
    def signed_in(cls, user_id: str) -> "AuthState":
        return cls(user_id=user_id)


AuthListener = Callable[[AuthState], Awaitable[None]]


class AuthEvents:
    def __init__(self, initial: Optional[AuthState] = None):
        self.current = initial or AuthState.signed_out()
        self._listeners: List[AuthListener] = []

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def publish(self, state: AuthState) -> None:
        if state == self.current:
            return

        logger.info(
            f"Auth state changed: {self.current.user_id or 'guest'} -> {state.user_id or 'guest'}"
        )
        self.current = state
        for listener in list(self._listeners):
            await listener(state)

    async def sign_in(self, user_id: str) -> None:
        await self.publish(AuthState.signed_in(user_id))

    async def sign_out(self) -> None:
        await self.publish(AuthState.signed_out())
