from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence
from uuid import UUID

from oauth2_pg_store.domain.entities import StoredToken, TokenResponse


class TokenStore(ABC):
    """Abstract interface for OAuth2 token persistence backends.

    Implementations never persist raw secrets and never retry; failures are
    raised as :class:`~oauth2_pg_store.application.exceptions.TokenStoreError`
    subclasses.
    """

    @abstractmethod
    def store_token(
        self,
        token: TokenResponse,
        client_id: str,
        user_id: Optional[UUID] = None,
        scopes: Sequence[str] = (),
    ) -> StoredToken:
        """Persist a newly issued token response and return the stored record."""

    @abstractmethod
    def get_by_access_token(self, access_token: str) -> Optional[StoredToken]:
        """Return the live record for an access token secret, or ``None``."""

    @abstractmethod
    def get_by_refresh_token(self, refresh_token: str) -> Optional[StoredToken]:
        """Return the live record for a refresh token secret, or ``None``."""

    @abstractmethod
    def revoke_by_access_token(self, access_token: str) -> None:
        """Mark every row with this access token's hash as revoked."""

    @abstractmethod
    def revoke_by_refresh_token(self, refresh_token: str) -> None:
        """Mark every row with this refresh token's hash as revoked."""

    @abstractmethod
    def cleanup(self) -> int:
        """Delete revoked or expired rows and return how many were removed."""

    def close(self) -> None:
        """Release any resources held by the store."""
