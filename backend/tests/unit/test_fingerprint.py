"""Unit tests for visitor fingerprints and keyed hashes."""

from unittest.mock import MagicMock

import pytest

from admission.fingerprint import (
    FINGERPRINT_SOURCE_NETWORK,
    FINGERPRINT_SOURCE_TOKEN,
    FingerprintHasher,
    client_network_address,
    normalize_address,
)


class TestFingerprintHasher:

    def test_visitor_token_verifies(self, hasher):
        token = hasher.issue_visitor_token()
        assert hasher.verify_visitor_token(token) is True

    @pytest.mark.parametrize("token", [None, "", "garbage", "a" * 43 + "." + "0" * 32])
    def test_invalid_visitor_tokens_rejected(self, hasher, token):
        assert hasher.verify_visitor_token(token) is False

    def test_token_signed_with_other_key_rejected(self, hasher):
        other = FingerprintHasher(b"another-key")
        assert hasher.verify_visitor_token(other.issue_visitor_token()) is False

    def test_fingerprint_from_token_is_stable(self, hasher):
        token = hasher.issue_visitor_token()
        first = hasher.fingerprint(token, "203.0.113.1")
        second = hasher.fingerprint(token, "198.51.100.9")

        assert first == second
        assert first.source == FINGERPRINT_SOURCE_TOKEN
        assert not first.is_network_fallback

    def test_fingerprint_falls_back_to_network(self, hasher):
        fingerprint = hasher.fingerprint(None, "203.0.113.1")

        assert fingerprint.source == FINGERPRINT_SOURCE_NETWORK
        assert fingerprint.is_network_fallback
        assert "203.0.113.1" not in fingerprint.value

    def test_forged_token_uses_network_fallback(self, hasher):
        fingerprint = hasher.fingerprint("forged-token", "203.0.113.1")
        assert fingerprint == hasher.fingerprint(None, "203.0.113.1")

    def test_recipient_hash_normalizes(self, hasher):
        assert hasher.recipient_hash(" Bob@Example.COM ") == hasher.recipient_hash("bob@example.com")

    def test_recipient_hash_is_keyed(self, hasher):
        other = FingerprintHasher(b"another-key")
        assert hasher.recipient_hash("bob@example.com") != other.recipient_hash("bob@example.com")
        assert "bob" not in hasher.recipient_hash("bob@example.com")

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            FingerprintHasher(b"")


class TestClientNetworkAddress:

    def _request(self, host="10.0.0.1", forwarded=None):
        request = MagicMock()
        request.client.host = host
        request.headers = {"X-Forwarded-For": forwarded} if forwarded else {}
        return request

    def test_uses_socket_peer_by_default(self):
        request = self._request(forwarded="198.51.100.1")
        assert client_network_address(request) == "10.0.0.1"

    def test_forwarded_for_honoured_when_trusted(self):
        request = self._request(forwarded="198.51.100.1, 10.0.0.2")
        assert client_network_address(request, trust_forwarded_for=True) == "198.51.100.1"

    def test_normalize_address(self):
        assert normalize_address("  A@B.C ") == "a@b.c"
