"""Identity vault: AES-256-GCM encryption for sender and recipient addresses.

Security considerations:
- Uses AES-256-GCM for authenticated encryption
- Derives the encryption key from VAULT_SECRET using HKDF
- Each encryption uses a unique random nonce
- Associated data binds every ciphertext to its purpose and item, so an
  envelope copied onto another item fails to decrypt
- Decryption fails closed: tampering raises, it never yields partial plaintext

There is no plaintext fallback. A missing key is fatal (VaultKeyUnavailable).
"""

import base64
import binascii
import json
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from config import get_settings
from domain.errors import EncryptionFailure, VaultKeyUnavailable


@dataclass
class EncryptedValue:
    """Encrypted value container.

    Attributes:
        version: Encryption format version (for future upgrades)
        nonce: Base64-encoded nonce used for encryption
        ciphertext: Base64-encoded encrypted data (includes GCM tag)
    """
    version: int
    nonce: str
    ciphertext: str

    def to_json(self) -> str:
        """Serialize to JSON string for database storage."""
        return json.dumps({"v": self.version, "n": self.nonce, "c": self.ciphertext})

    @classmethod
    def from_json(cls, data: str) -> "EncryptedValue":
        """Deserialize from JSON string."""
        try:
            parsed = json.loads(data)
            return cls(version=parsed["v"], nonce=parsed["n"], ciphertext=parsed["c"])
        except (ValueError, KeyError, TypeError) as e:
            raise EncryptionFailure(f"Malformed ciphertext envelope: {type(e).__name__}")


class IdentityVault:
    """AES-256-GCM encryption for personal addresses.

    The derived key never leaves this object and is read-only after
    construction, so one instance is shared by every worker.

    Example:
        vault = IdentityVault(secret)
        stored = vault.encrypt("alice@example.com", context=f"sender_identity:{item.id}")
        vault.decrypt(stored, context=f"sender_identity:{item.id}")
    """

    HKDF_INFO = b"feedback-relay-identity-vault-v1"
    FORMAT_VERSION = 1

    def __init__(self, secret: Optional[str]):
        """Initialize vault from key material.

        Args:
            secret: Base key material (VAULT_SECRET)

        Raises:
            VaultKeyUnavailable: If no key material is configured
        """
        if not secret:
            raise VaultKeyUnavailable("VAULT_SECRET is not configured")
        self._key = self._derive_key(secret.encode())
        self._aesgcm = AESGCM(self._key)

    def _derive_key(self, material: bytes) -> bytes:
        """Derive 256-bit encryption key using HKDF."""
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=32,  # 256 bits
            salt=None,
            info=self.HKDF_INFO,
        )
        return hkdf.derive(material)

    def derive_subkey(self, purpose: str) -> bytes:
        """Derive an independent 256-bit key for another purpose (e.g. HMAC)."""
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=None,
            info=f"feedback-relay-{purpose}-v1".encode(),
        )
        return hkdf.derive(self._key)

    def encrypt(self, plaintext: str, context: str) -> str:
        """Encrypt a string and return the JSON envelope for storage.

        Args:
            plaintext: Value to encrypt
            context: Associated data (e.g. "sender_identity:{item_id}");
                     must match during decryption

        Returns:
            JSON envelope string
        """
        # Generate random nonce (96 bits for GCM)
        nonce = os.urandom(12)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), context.encode())

        return EncryptedValue(
            version=self.FORMAT_VERSION,
            nonce=base64.b64encode(nonce).decode(),
            ciphertext=base64.b64encode(ciphertext).decode(),
        ).to_json()

    def decrypt(self, stored: str, context: str) -> str:
        """Decrypt a JSON envelope.

        Args:
            stored: JSON envelope produced by encrypt()
            context: Associated data used at encryption time

        Returns:
            Decrypted plaintext

        Raises:
            EncryptionFailure: Wrong key, tampered data, wrong context or
                               malformed envelope
        """
        envelope = EncryptedValue.from_json(stored)
        if envelope.version != self.FORMAT_VERSION:
            raise EncryptionFailure(f"Unsupported encryption version: {envelope.version}")

        try:
            nonce = base64.b64decode(envelope.nonce, validate=True)
            ciphertext = base64.b64decode(envelope.ciphertext, validate=True)
        except (binascii.Error, ValueError):
            raise EncryptionFailure("Malformed ciphertext encoding")

        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext, context.encode())
        except (InvalidTag, ValueError):
            raise EncryptionFailure("Decryption failed - invalid key or tampered data")

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise EncryptionFailure("Decrypted value is not valid UTF-8")


def sender_identity_context(item_id) -> str:
    return f"sender_identity:{item_id}"


def recipient_address_context(item_id) -> str:
    return f"recipient_address:{item_id}"


# Module-level vault instance (lazy initialization)
_vault: Optional[IdentityVault] = None


def get_vault() -> IdentityVault:
    """Get or create the module-level vault instance.

    Raises:
        VaultKeyUnavailable: If VAULT_SECRET is not configured
    """
    global _vault
    if _vault is None:
        _vault = IdentityVault(get_settings().VAULT_SECRET)
    return _vault


def reset_vault() -> None:
    """Drop the cached vault (used after settings reload)."""
    global _vault
    _vault = None
