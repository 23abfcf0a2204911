"""Integration tests for the feedback HTTP API

Tests cover:
- Submission, visitor cookie and admission denials
- Content blocking and input validation without echoing input
- Sender review, approval and withdrawal
- Recipient view, one-time reply and abuse reports
- Health and metrics endpoints
"""

import logging

import pytest
from fastapi.testclient import TestClient

from domain.content.ports import ProviderServiceError
from fixtures.doubles import blocked_verdict, link_token, ok_verdict


pytestmark = pytest.mark.integration

RAW_TEXT = "Your comments in meetings are dismissive and it makes people stop talking."
IMPROVED = "When ideas are dismissed quickly in meetings, people tend to stop contributing."


@pytest.fixture(autouse=True)
def improved_verdict(provider):
    provider.verdict = ok_verdict(IMPROVED)


@pytest.fixture
def visitor_cookie(client: TestClient, hasher):
    client.cookies.set("relay_visitor", hasher.issue_visitor_token())


def _submit(client: TestClient, **overrides):
    payload = {"recipient_email": "bob@example.com", "content": RAW_TEXT}
    payload.update(overrides)
    return client.post("/feedback", json=payload)


def _deliver(client: TestClient, dispatcher, **overrides):
    submitted = _submit(client, **overrides).json()
    client.post(f"/feedback/sender/{submitted['sender_token']}/approve")
    [(_, message)] = dispatcher.of_kind("feedback")
    return submitted["sender_token"], link_token(message)


class TestSubmitEndpoint:
    """Test POST /feedback"""

    def test_submit_returns_rewrite(self, client: TestClient):
        response = _submit(client)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "AWAITING_APPROVAL"
        assert data["improved_content"] == IMPROVED
        assert data["sender_token"]
        assert "X-Request-ID" in response.headers

    def test_first_submission_sets_visitor_cookie(self, client: TestClient):
        response = _submit(client)

        cookie = response.headers["set-cookie"]
        assert cookie.startswith("relay_visitor=")
        assert "httponly" in cookie.lower()
        assert "samesite=lax" in cookie.lower()

    def test_valid_cookie_is_not_reissued(self, client: TestClient, visitor_cookie):
        response = _submit(client)
        assert "set-cookie" not in response.headers

    def test_rate_limited_response_names_limiter_only(self, client: TestClient, visitor_cookie):
        for _ in range(3):
            assert _submit(client).status_code == 201

        response = _submit(client)

        assert response.status_code == 429
        data = response.json()
        assert set(data) == {"error", "reason", "limiter", "message"}
        assert data["reason"] == "rate_limited"
        assert data["limiter"] == "pair"

    def test_other_recipient_still_accepted(self, client: TestClient, visitor_cookie):
        for _ in range(3):
            _submit(client)
        assert _submit(client, recipient_email="carol@example.com").status_code == 201

    def test_honeypot_is_rejected(self, client: TestClient):
        response = _submit(client, website="http://spam.example")

        assert response.status_code == 403
        assert response.json()["reason"] == "bot_suspected"

    def test_blocked_content(self, client: TestClient, provider):
        provider.verdict = blocked_verdict("harassment", "Personal insult")

        response = _submit(client)

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "content_blocked"
        assert data["category"] == "harassment"
        assert "Personal insult" not in response.text
        assert RAW_TEXT not in response.text

    def test_pipeline_outage_returns_accepted(self, client: TestClient, provider):
        provider.error = ProviderServiceError("down")

        response = _submit(client)

        assert response.status_code == 202
        assert response.json()["status"] == "PROCESSING"

        provider.error = None
        retried = client.post(f"/feedback/sender/{response.json()['sender_token']}/retry")
        assert retried.status_code == 200
        assert retried.json()["status"] == "AWAITING_APPROVAL"

    @pytest.mark.parametrize("payload", [
        {"recipient_email": "bob@example.com", "content": "short"},
        {"recipient_email": "not-an-address", "content": RAW_TEXT},
        {"recipient_email": "bob@example.com", "content": RAW_TEXT, "unexpected": "field"},
    ])
    def test_validation_errors_do_not_echo_input(self, client: TestClient, payload):
        response = client.post("/feedback", json=payload)

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"
        assert "not-an-address" not in response.text
        assert RAW_TEXT not in response.text


class TestSenderEndpoints:
    """Test /feedback/sender/{token} endpoints"""

    def test_view_and_approve(self, client: TestClient, dispatcher):
        token = _submit(client).json()["sender_token"]

        view = client.get(f"/feedback/sender/{token}")
        assert view.status_code == 200
        assert view.json()["content"] == RAW_TEXT
        assert view.json()["improved_content"] == IMPROVED

        approved = client.post(f"/feedback/sender/{token}/approve")
        assert approved.status_code == 200
        assert approved.json()["status"] == "DELIVERED"
        assert len(dispatcher.of_kind("feedback")) == 1

    def test_approve_twice_conflicts(self, client: TestClient):
        token = _submit(client).json()["sender_token"]
        client.post(f"/feedback/sender/{token}/approve")

        response = client.post(f"/feedback/sender/{token}/approve")
        assert response.status_code == 409

    def test_delivery_failure_reported_as_pending(self, client: TestClient, dispatcher):
        from domain.delivery.ports import TransportError

        token = _submit(client).json()["sender_token"]
        dispatcher.fail_with = TransportError("smtp down")

        response = client.post(f"/feedback/sender/{token}/approve")

        assert response.status_code == 200
        assert response.json()["status"] == "APPROVED"
        assert response.json()["delivery_status"] == "pending"

    def test_edit_and_withdraw(self, client: TestClient, provider):
        token = _submit(client).json()["sender_token"]
        provider.verdict = ok_verdict("A gentler version.")

        edited = client.post(f"/feedback/sender/{token}/edit", json={"content": "Edited feedback text here."})
        assert edited.json()["improved_content"] == "A gentler version."

        withdrawn = client.post(f"/feedback/sender/{token}/withdraw")
        assert withdrawn.json()["status"] == "REJECTED"
        assert withdrawn.json()["rejection_reason"] == "withdrawn_by_sender"

    def test_delete_identity(self, client: TestClient):
        token = _submit(client, sender_email="alice@example.com").json()["sender_token"]
        assert client.get(f"/feedback/sender/{token}").json()["has_sender_identity"] is True

        response = client.delete(f"/feedback/sender/{token}/identity")
        assert response.json()["has_sender_identity"] is False

    def test_unknown_tokens_are_indistinguishable(self, client: TestClient):
        sender = client.get("/feedback/sender/not-a-real-token")
        recipient = client.get("/feedback/not-a-real-token")

        assert sender.status_code == recipient.status_code == 403
        assert sender.json() == recipient.json()


class TestRecipientEndpoints:
    """Test /feedback/{recipient_token} endpoints"""

    def test_recipient_sees_only_improved_text(self, client: TestClient, dispatcher):
        _, token = _deliver(client, dispatcher, sender_email="alice@example.com")

        response = client.get(f"/feedback/{token}")

        assert response.status_code == 200
        data = response.json()
        assert data["content"] == IMPROVED
        assert data["read_at"] is not None
        assert data["can_respond"] is True
        assert RAW_TEXT not in response.text
        assert "alice@example.com" not in response.text

    def test_single_reply(self, client: TestClient, dispatcher):
        sender_token, token = _deliver(client, dispatcher)

        first = client.post(f"/feedback/{token}/respond", json={"body": "Thank you, noted."})
        second = client.post(f"/feedback/{token}/respond", json={"body": "Again."})

        assert first.status_code == 201
        assert second.status_code == 409
        assert client.get(f"/feedback/sender/{sender_token}").json()["response"] == "Thank you, noted."

    def test_report_is_idempotent(self, client: TestClient, dispatcher):
        _, token = _deliver(client, dispatcher)

        first = client.post(f"/feedback/{token}/report", json={"duration_days": 30})
        second = client.post(f"/feedback/{token}/report")

        assert first.status_code == 201
        assert first.json()["directive_level"] == "sender_specific"
        assert first.json()["expires_at"] is not None
        assert second.status_code == 200
        assert second.json()["report_id"] == first.json()["report_id"]
        assert second.json()["created"] is False

    def test_report_blocks_next_submission(self, client: TestClient, dispatcher, visitor_cookie):
        _, token = _deliver(client, dispatcher)
        client.post(f"/feedback/{token}/report")

        response = _submit(client)

        assert response.status_code == 403
        assert response.json()["reason"] == "blocked"

    def test_sender_token_cannot_report(self, client: TestClient):
        token = _submit(client).json()["sender_token"]
        assert client.post(f"/feedback/{token}/report").status_code == 403


class TestObservabilityEndpoints:

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        components = response.json()["components"]
        assert set(components) == {"database", "counter_store", "content_pipeline"}

    def test_metrics(self, client: TestClient):
        _submit(client)
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "relay_admission_decisions_total" in response.text

    def test_request_log_uses_route_template(self, client: TestClient, caplog):
        with caplog.at_level(logging.INFO, logger="observability.middleware"):
            client.get("/feedback/sender/some-secret-token-value")

        messages = [r.getMessage() for r in caplog.records if r.name == "observability.middleware"]
        assert "GET /feedback/sender/{sender_token} 403" in messages
        assert not any("some-secret-token-value" in m for m in messages)
