"""
Domain service: Offline credential policies.

Offline login is only possible for users a policy knows about. The
policy is injected into the sync coordinator so production builds can
ship a different table or disable offline login entirely.
"""
import hmac
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

from app.config import settings


@dataclass(frozen=True)
class OfflineCredential:
    """Locally known user that may sign in without the remote service."""
    password: str
    first_name: str
    last_name: str


class CredentialPolicy(Protocol):
    def verify(self, user_type: str, username: str, password: str) -> Optional[OfflineCredential]:
        """Return the matching credential, or None if unknown or wrong password."""
        ...


class StaticCredentialTable:
    """Credential table keyed by ``"<user_type>.<username>"``."""

    def __init__(self, entries: Mapping[str, OfflineCredential]):
        self._entries = dict(entries)

    def verify(self, user_type: str, username: str, password: str) -> Optional[OfflineCredential]:
        credential = self._entries.get(f"{user_type}.{username}")
        if credential is None:
            return None
        if not hmac.compare_digest(credential.password.encode(), password.encode()):
            return None
        return credential


class NoOfflineCredentials:
    """Policy that disables offline login."""

    def verify(self, user_type: str, username: str, password: str) -> Optional[OfflineCredential]:
        return None


FIELD_CREDENTIALS = {
    # Regulatory users
    "regulatory.admin": OfflineCredential("admin123", "Admin", "User"),
    "regulatory.inspector": OfflineCredential("inspect123", "John", "Inspector"),
    # Farmer users
    "farmer.farmer001": OfflineCredential("farmer123", "John", "Farmer"),
    "farmer.farmer002": OfflineCredential("farm456", "Mary", "Johnson"),
    "farmer.demo": OfflineCredential("demo123", "Demo", "Farmer"),
    # Field agent users
    "field_agent.agent001": OfflineCredential("agent123", "Jane", "Agent"),
    "field_agent.field001": OfflineCredential("field123", "Tom", "Field"),
    # Exporter users
    "exporter.export001": OfflineCredential("export123", "Bob", "Exporter"),
    "exporter.trade001": OfflineCredential("trade123", "Alice", "Trader"),
}


def default_credential_policy() -> CredentialPolicy:
    """Field credential table, or no offline login when disabled in settings."""
    if settings.offline_demo_credentials_enabled:
        return StaticCredentialTable(FIELD_CREDENTIALS)
    return NoOfflineCredentials()


def offline_role(user_type: str) -> str:
    """Role granted to a user signed in offline without a cached token."""
    return "regulatory_admin" if user_type == "regulatory" else user_type
