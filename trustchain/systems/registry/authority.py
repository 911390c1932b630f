"""
Trustchain — Administrative Authority

The single principal allowed to adjust reputation. Fixed when the registry
is built; there is no transfer or rotation.
"""

from __future__ import annotations

import structlog

from trustchain.systems.registry.errors import NotAuthorizedError

logger = structlog.get_logger("trustchain.systems.registry.authority")


class AdministrativeAuthority:
    """Gate for privileged reputation mutations. No other operation consults it."""

    __slots__ = ("_principal", "_logger")

    def __init__(self, principal: str) -> None:
        if not principal:
            raise ValueError("Administrative principal must be non-empty")
        self._principal = principal
        self._logger = logger.bind(component="administrative_authority")

    @property
    def principal(self) -> str:
        return self._principal

    def is_authorized(self, caller: str) -> bool:
        return caller == self._principal

    def authorize(self, caller: str) -> None:
        """Raise NotAuthorizedError unless caller is the principal."""
        if not self.is_authorized(caller):
            self._logger.warning("authorization_denied", caller=caller)
            raise NotAuthorizedError(caller)
