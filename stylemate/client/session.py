"""Identity/session collaborator. Token storage and refresh live with the identity provider."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

CUSTOMER_ROLE = "customer"


@dataclass(frozen=True)
class Identity:
    is_authenticated: bool = False
    roles: tuple[str, ...] = ()
    user_id: Optional[str] = None

    @property
    def is_customer(self) -> bool:
        """Authenticated and holding the customer capability: the gate for server-backed carts"""
        return self.is_authenticated and CUSTOMER_ROLE in self.roles


ANONYMOUS = Identity()

SessionListener = Callable[[Identity, Identity], Awaitable[None]]


class SessionManager:
    """
    Holds the current identity for one app session.

    Constructed at app start and injected into the engines; listeners are
    awaited in registration order on every identity change with
    (previous, current).
    """

    def __init__(self, identity: Identity = ANONYMOUS):
        self._identity = identity
        self._listeners: list[SessionListener] = []

    @property
    def current(self) -> Identity:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._identity.is_authenticated

    @property
    def roles(self) -> tuple[str, ...]:
        return self._identity.roles

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def set_identity(self, identity: Identity) -> None:
        previous = self._identity
        self._identity = identity
        logger.info(
            f"🔐 Session changed: authenticated={identity.is_authenticated} roles={list(identity.roles)}"
        )
        for listener in list(self._listeners):
            try:
                await listener(previous, identity)
            except Exception as e:
                logger.error(f"❌ Session listener {getattr(listener, '__name__', listener)} failed: {e}")

    async def sign_in(self, user_id: str, roles: list[str]) -> None:
        await self.set_identity(Identity(is_authenticated=True, roles=tuple(roles), user_id=user_id))

    async def sign_out(self) -> None:
        await self.set_identity(ANONYMOUS)
