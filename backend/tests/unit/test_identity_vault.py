"""Unit tests for the identity vault (AES-256-GCM address encryption)."""

import json

import pytest

from domain.errors import EncryptionFailure, VaultKeyUnavailable
from vault.identity_vault import (
    EncryptedValue,
    IdentityVault,
    recipient_address_context,
    sender_identity_context,
)


class TestIdentityVault:
    """Encryption round-trip and fail-closed decryption."""

    def test_round_trip(self, vault):
        stored = vault.encrypt("alice@example.com", context="sender_identity:1")
        assert vault.decrypt(stored, context="sender_identity:1") == "alice@example.com"

    @pytest.mark.parametrize("address", [
        "a@b.co",
        "Ünïcødé.user+tag@exämple.org",
        "x" * 320,
    ])
    def test_round_trip_various_addresses(self, vault, address):
        stored = vault.encrypt(address, context="ctx")
        assert vault.decrypt(stored, context="ctx") == address

    def test_ciphertext_does_not_contain_plaintext(self, vault):
        stored = vault.encrypt("alice@example.com", context="ctx")
        assert "alice" not in stored
        assert "example.com" not in stored

    def test_same_plaintext_encrypts_differently(self, vault):
        first = vault.encrypt("alice@example.com", context="ctx")
        second = vault.encrypt("alice@example.com", context="ctx")
        assert first != second

    def test_tampered_ciphertext_fails(self, vault):
        stored = json.loads(vault.encrypt("alice@example.com", context="ctx"))
        raw = bytearray(stored["c"].encode())
        raw[5] = ord("A") if raw[5] != ord("A") else ord("B")
        stored["c"] = raw.decode()

        with pytest.raises(EncryptionFailure):
            vault.decrypt(json.dumps(stored), context="ctx")

    def test_wrong_context_fails(self, vault):
        stored = vault.encrypt("alice@example.com", context=sender_identity_context("item-1"))
        with pytest.raises(EncryptionFailure):
            vault.decrypt(stored, context=sender_identity_context("item-2"))

    def test_context_separates_purposes(self, vault):
        stored = vault.encrypt("alice@example.com", context=sender_identity_context("item-1"))
        with pytest.raises(EncryptionFailure):
            vault.decrypt(stored, context=recipient_address_context("item-1"))

    def test_wrong_key_fails(self, vault):
        stored = vault.encrypt("alice@example.com", context="ctx")
        other = IdentityVault("a-completely-different-secret-value")
        with pytest.raises(EncryptionFailure):
            other.decrypt(stored, context="ctx")

    @pytest.mark.parametrize("stored", [
        "not json",
        "{}",
        '{"v": 1, "n": "***", "c": "***"}',
        "[1, 2, 3]",
    ])
    def test_malformed_envelope_fails(self, vault, stored):
        with pytest.raises(EncryptionFailure):
            vault.decrypt(stored, context="ctx")

    def test_unsupported_version_fails(self, vault):
        stored = json.loads(vault.encrypt("alice@example.com", context="ctx"))
        stored["v"] = 99
        with pytest.raises(EncryptionFailure):
            vault.decrypt(json.dumps(stored), context="ctx")

    @pytest.mark.parametrize("secret", [None, ""])
    def test_missing_key_is_fatal(self, secret):
        with pytest.raises(VaultKeyUnavailable):
            IdentityVault(secret)

    def test_subkeys_are_distinct_per_purpose(self, vault):
        assert vault.derive_subkey("fingerprint") != vault.derive_subkey("other")
        assert len(vault.derive_subkey("fingerprint")) == 32


class TestEncryptedValue:

    def test_json_round_trip(self):
        value = EncryptedValue(version=1, nonce="bm9uY2U=", ciphertext="Y2lwaGVy")
        assert EncryptedValue.from_json(value.to_json()) == value
