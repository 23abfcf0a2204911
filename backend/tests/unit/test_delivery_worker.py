"""Unit tests for the delivery retry worker."""

import asyncio
from datetime import timedelta

import pytest

from domain.delivery.ports import TransportError
from domain.errors import InvalidStateError
from models.base import utcnow
from submissions.service import NewSubmission
from workers.delivery_worker import retry_pending_deliveries

TEXT = "Meetings regularly overrun and nobody stops them."


async def _approved_but_undelivered(service, make_visitor, dispatcher):
    result = await service.submit(NewSubmission(recipient_email="bob@example.com", text=TEXT), make_visitor())
    dispatcher.fail_with = TransportError("smtp down")
    await service.approve(result.sender_token)
    return result.item


class TestRetryPendingDeliveries:

    @pytest.mark.asyncio
    async def test_redelivers_when_transport_recovers(self, service, make_visitor, dispatcher):
        item = await _approved_but_undelivered(service, make_visitor, dispatcher)
        dispatcher.fail_with = None

        counts = await retry_pending_deliveries(service, max_attempts=8)

        assert counts == {"delivered": 1, "failed": 0, "exhausted": 0}
        assert item.status == "DELIVERED"
        assert item.delivery_attempts == 2
        assert len(dispatcher.of_kind("feedback")) == 1

    @pytest.mark.asyncio
    async def test_failed_attempt_counted(self, service, make_visitor, dispatcher):
        item = await _approved_but_undelivered(service, make_visitor, dispatcher)

        counts = await retry_pending_deliveries(service, max_attempts=8)

        assert counts == {"delivered": 0, "failed": 1, "exhausted": 0}
        assert item.status == "APPROVED"
        assert item.delivery_attempts == 2

    @pytest.mark.asyncio
    async def test_stops_at_attempt_cap(self, service, make_visitor, dispatcher):
        item = await _approved_but_undelivered(service, make_visitor, dispatcher)

        first = await retry_pending_deliveries(service, max_attempts=2)
        second = await retry_pending_deliveries(service, max_attempts=2)

        assert first["exhausted"] == 1
        assert second == {"delivered": 0, "failed": 0, "exhausted": 0}
        assert item.delivery_attempts == 2

    @pytest.mark.asyncio
    async def test_delivered_items_are_skipped(self, service, make_visitor, dispatcher):
        result = await service.submit(NewSubmission(recipient_email="bob@example.com", text=TEXT), make_visitor())
        await service.approve(result.sender_token)

        counts = await retry_pending_deliveries(service, max_attempts=8)
        assert counts == {"delivered": 0, "failed": 0, "exhausted": 0}

    @pytest.mark.asyncio
    async def test_approve_in_flight_is_not_delivered_twice(self, service, make_visitor, dispatcher):
        result = await service.submit(NewSubmission(recipient_email="bob@example.com", text=TEXT), make_visitor())
        dispatcher.delay = 0.05

        approved, counts = await asyncio.gather(
            service.approve(result.sender_token),
            retry_pending_deliveries(service, max_attempts=8),
        )

        assert approved.status == "DELIVERED"
        assert counts == {"delivered": 0, "failed": 0, "exhausted": 0}
        assert len(dispatcher.of_kind("feedback")) == 1

    @pytest.mark.asyncio
    async def test_claimed_item_is_left_alone(self, service, make_visitor, dispatcher):
        item = await _approved_but_undelivered(service, make_visitor, dispatcher)
        dispatcher.fail_with = None
        assert service.claim_delivery(item.id) is not None

        counts = await retry_pending_deliveries(service, max_attempts=8)

        assert counts == {"delivered": 0, "failed": 0, "exhausted": 0}
        assert service.claim_delivery(item.id) is None
        assert dispatcher.of_kind("feedback") == []

    @pytest.mark.asyncio
    async def test_abandoned_claim_is_taken_over(self, db_session, service, make_visitor, dispatcher):
        item = await _approved_but_undelivered(service, make_visitor, dispatcher)
        dispatcher.fail_with = None
        item.delivery_claimed_at = utcnow() - timedelta(seconds=service.settings.DELIVERY_CLAIM_LEASE_SECONDS + 60)
        db_session.commit()

        counts = await retry_pending_deliveries(service, max_attempts=8)

        assert counts["delivered"] == 1
        assert item.status == "DELIVERED"
        assert item.delivery_claimed_at is None

    @pytest.mark.asyncio
    async def test_state_error_skips_item_and_continues(self, service, make_visitor, dispatcher, monkeypatch):
        first = await _approved_but_undelivered(service, make_visitor, dispatcher)
        second = await _approved_but_undelivered(service, make_visitor, dispatcher)
        dispatcher.fail_with = None
        deliver = service.deliver

        async def deliver_or_conflict(item, sender_token=None):
            if item.id == first.id:
                raise InvalidStateError("Only approved feedback can be delivered")
            await deliver(item, sender_token=sender_token)

        monkeypatch.setattr(service, "deliver", deliver_or_conflict)

        counts = await retry_pending_deliveries(service, max_attempts=8)

        assert counts["delivered"] == 1
        assert second.status == "DELIVERED"
        assert first.status == "APPROVED"
