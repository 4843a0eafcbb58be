"""Domain entities for persisted OAuth2 token metadata."""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

SECRET_NBYTES = 32
# Upper bound on token lifetimes; keeps NOW() + expires_in readable as a datetime.
MAX_EXPIRES_IN_SECONDS = 100 * 365 * 24 * 60 * 60
MAX_EXPIRES_IN = timedelta(seconds=MAX_EXPIRES_IN_SECONDS)

ExpiresIn = Union[timedelta, int, float, None]


def _coerce_expires_in(value: ExpiresIn) -> Optional[timedelta]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError("expires_in must be a timedelta or a number of seconds")
    if isinstance(value, timedelta):
        duration = value
    elif isinstance(value, (int, float)):
        try:
            duration = timedelta(seconds=value)
        except OverflowError as exc:
            raise ValueError(f"expires_in is out of range: {value}") from exc
    else:
        raise TypeError("expires_in must be a timedelta or a number of seconds")
    if duration < timedelta(0):
        raise ValueError("expires_in must not be negative")
    if duration > MAX_EXPIRES_IN:
        raise ValueError(f"expires_in must not exceed {MAX_EXPIRES_IN_SECONDS} seconds")
    return duration


def _coerce_uuid(value: Any) -> Optional[uuid.UUID]:
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


@dataclass
class TokenResponse:
    """A freshly issued token pair as handed to ``TokenStore.store_token``.

    Only the secrets' digests are ever persisted; this object is the one
    place the raw values live.
    """

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: ExpiresIn = None
    token_type: str = "bearer"

    def __post_init__(self) -> None:
        if not isinstance(self.access_token, str) or not self.access_token:
            raise ValueError("access_token must be a non-empty string")
        if self.refresh_token is not None and (
            not isinstance(self.refresh_token, str) or not self.refresh_token
        ):
            raise ValueError("refresh_token must be a non-empty string when provided")
        self.expires_in = _coerce_expires_in(self.expires_in)

    @classmethod
    def issue(cls, expires_in: ExpiresIn = None, with_refresh: bool = True) -> "TokenResponse":
        """Generate a new response with random URL-safe secrets."""
        return cls(
            access_token=secrets.token_urlsafe(SECRET_NBYTES),
            refresh_token=secrets.token_urlsafe(SECRET_NBYTES) if with_refresh else None,
            expires_in=expires_in,
        )

    @property
    def expires_in_seconds(self) -> Optional[int]:
        if self.expires_in is None:
            return None
        return int(self.expires_in.total_seconds())


@dataclass(frozen=True)
class StoredToken:
    """A row of ``oauth2_tokens``."""

    id: uuid.UUID
    access_token_hash: str
    refresh_token_hash: Optional[str]
    client_id: str
    user_id: Optional[uuid.UUID]
    scopes: List[str] = field(default_factory=list)
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    revoked: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StoredToken":
        return cls(
            id=_coerce_uuid(row["id"]),
            access_token_hash=row["access_token_hash"],
            refresh_token_hash=row.get("refresh_token_hash"),
            client_id=row["client_id"],
            user_id=_coerce_uuid(row.get("user_id")),
            scopes=list(row.get("scopes") or []),
            issued_at=row.get("issued_at"),
            expires_at=row.get("expires_at"),
            revoked=bool(row.get("revoked", False)),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """Mirror of the lookup predicate: not revoked and not yet expired."""
        return not self.revoked and not self.is_expired(now)

    def to_dict(self, include_hashes: bool = False) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": str(self.id),
            "client_id": self.client_id,
            "user_id": str(self.user_id) if self.user_id is not None else None,
            "scopes": list(self.scopes),
            "issued_at": _isoformat(self.issued_at),
            "expires_at": _isoformat(self.expires_at),
            "revoked": self.revoked,
        }
        if include_hashes:
            payload["access_token_hash"] = self.access_token_hash
            payload["refresh_token_hash"] = self.refresh_token_hash
        return payload


__all__ = ["TokenResponse", "StoredToken", "MAX_EXPIRES_IN_SECONDS"]
