"""Identity vault - address encryption and opaque access tokens"""

from .identity_vault import (
    IdentityVault,
    EncryptedValue,
    get_vault,
    reset_vault,
    sender_identity_context,
    recipient_address_context,
)
from .tokens import (
    ResolvedToken,
    hash_token,
    issue_token,
    resolve_token,
    revoke_token,
    revoke_all_for_item,
)

__all__ = [
    "IdentityVault",
    "EncryptedValue",
    "get_vault",
    "reset_vault",
    "sender_identity_context",
    "recipient_address_context",
    "ResolvedToken",
    "hash_token",
    "issue_token",
    "resolve_token",
    "revoke_token",
    "revoke_all_for_item",
]
