"""Pseudonymous visitor identity for admission control.

Everything here is a keyed HMAC: fingerprints, recipient hashes and
network keys cannot be reversed into an address without the relay's key,
and raw network addresses never reach the counter store or the database.

Visitor tokens are server-issued and signed (``<random>.<mac>``). A cookie
that does not verify is treated as absent, so a client cannot mint its
own fingerprints; it falls back to the stricter network-derived path.
"""

import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

FINGERPRINT_SOURCE_TOKEN = "token"
FINGERPRINT_SOURCE_NETWORK = "network"

_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{43}\.[0-9a-f]{32}$")


@dataclass(frozen=True)
class VisitorFingerprint:
    """Stable pseudonymous identifier of a submitting client.

    Attributes:
        value: 32-char hex HMAC
        source: 'token' (visitor cookie) or 'network' (address fallback)
    """
    value: str
    source: str

    @property
    def is_network_fallback(self) -> bool:
        return self.source == FINGERPRINT_SOURCE_NETWORK

    @property
    def short(self) -> str:
        """Prefix safe for log lines."""
        return self.value[:8]


def normalize_address(address: str) -> str:
    """Canonical form of an email address used for hashing."""
    return address.strip().lower()


class FingerprintHasher:
    """Keyed hashing of visitor, recipient and network identifiers."""

    def __init__(self, key: bytes):
        if not key:
            raise ValueError("Fingerprint key must not be empty")
        self._key = key

    def _mac(self, label: str, value: str) -> str:
        return hmac.new(self._key, f"{label}:{value}".encode("utf-8"), hashlib.sha256).hexdigest()

    def issue_visitor_token(self) -> str:
        """Mint a new signed visitor token for the long-lived cookie."""
        raw = secrets.token_urlsafe(32)
        return f"{raw}.{self._mac('visitor', raw)[:32]}"

    def verify_visitor_token(self, token: Optional[str]) -> bool:
        if not token or not _TOKEN_PATTERN.match(token):
            return False
        raw, mac = token.split(".", 1)
        return hmac.compare_digest(mac, self._mac("visitor", raw)[:32])

    def fingerprint(self, visitor_token: Optional[str], network_address: str) -> VisitorFingerprint:
        """Derive the fingerprint, preferring a verified visitor token."""
        if self.verify_visitor_token(visitor_token):
            return VisitorFingerprint(
                value=self._mac("fp-token", visitor_token)[:32],
                source=FINGERPRINT_SOURCE_TOKEN,
            )
        return VisitorFingerprint(
            value=self._mac("fp-network", network_address)[:32],
            source=FINGERPRINT_SOURCE_NETWORK,
        )

    def recipient_hash(self, address: str) -> str:
        """One-way hash of a normalized recipient address."""
        return self._mac("recipient", normalize_address(address))

    def network_key(self, network_address: str) -> str:
        return self._mac("network", network_address)[:32]


def client_network_address(request: Request, trust_forwarded_for: bool = False) -> str:
    """Extract the client address.

    X-Forwarded-For is honoured only behind a trusted proxy; otherwise a
    client could rotate the header to dodge the network limiters.
    """
    if trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"
