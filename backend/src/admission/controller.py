"""Admission controller.

Decides, before any content is processed, whether a submission may enter
the pipeline. Checks run in order and the first denial wins:

    1. honeypot field filled          -> bot_suspected
    2. block directive for the pair   -> blocked
    3. limiter windows (atomic)       -> rate_limited / bot_suspected

Any failure to consult the block registry or the counter store denies
with service_unavailable. A denied attempt is not counted against any
limiter.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from abuse.registry import AbuseRegistry
from domain.admission.ports import CounterStorePort, CounterStoreUnavailable
from domain.errors import AdmissionDenied
from observability.metrics import admission_decisions_total
from .fingerprint import VisitorFingerprint
from .limits import AdmissionLimits, LIMITER_NETWORK, build_window_limits

logger = logging.getLogger(__name__)

REASON_RATE_LIMITED = "rate_limited"
REASON_BLOCKED = "blocked"
REASON_BOT_SUSPECTED = "bot_suspected"
REASON_SERVICE_UNAVAILABLE = "service_unavailable"


@dataclass(frozen=True)
class AdmissionDecision:
    """Outcome of an admission check.

    ``limiter`` names the limiter that fired; counts are never exposed.
    """
    allowed: bool
    reason: Optional[str] = None
    limiter: Optional[str] = None

    @classmethod
    def allow(cls) -> "AdmissionDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, limiter: Optional[str] = None) -> "AdmissionDecision":
        return cls(allowed=False, reason=reason, limiter=limiter)

    def raise_for_denial(self) -> None:
        if not self.allowed:
            raise AdmissionDenied(self.reason, limiter=self.limiter)


class AdmissionController:
    """Gatekeeper in front of the content pipeline."""

    def __init__(
        self,
        counter_store: CounterStorePort,
        registry: AbuseRegistry,
        limits: Optional[AdmissionLimits] = None,
    ):
        self.counter_store = counter_store
        self.registry = registry
        self.limits = limits or AdmissionLimits()

    def admit(
        self,
        fingerprint: VisitorFingerprint,
        recipient_hash: str,
        network_key: str,
        honeypot: Optional[str] = None,
    ) -> AdmissionDecision:
        """Evaluate one submission attempt.

        Args:
            fingerprint: Visitor fingerprint (token- or network-derived)
            recipient_hash: Keyed hash of the normalized recipient address
            network_key: Keyed hash of the client network address
            honeypot: Value of the hidden form field; bots fill it

        Returns:
            AdmissionDecision (allowed, or denied with reason)
        """
        if honeypot:
            return self._record(AdmissionDecision.deny(REASON_BOT_SUSPECTED, limiter="honeypot"), fingerprint)

        try:
            block = self.registry.check_block(fingerprint.value, recipient_hash)
        except SQLAlchemyError as e:
            logger.error(f"Block registry unavailable, denying admission: {e}")
            return self._record(AdmissionDecision.deny(REASON_SERVICE_UNAVAILABLE), fingerprint)

        if block.blocked:
            return self._record(AdmissionDecision.deny(REASON_BLOCKED, limiter=block.level.value), fingerprint)

        windows = build_window_limits(self.limits, fingerprint, recipient_hash, network_key)
        try:
            fired = self.counter_store.acquire(windows)
        except CounterStoreUnavailable as e:
            logger.error(f"Counter store unavailable, denying admission: {e}")
            return self._record(AdmissionDecision.deny(REASON_SERVICE_UNAVAILABLE), fingerprint)

        if fired is not None:
            reason = REASON_BOT_SUSPECTED if fired.name == LIMITER_NETWORK else REASON_RATE_LIMITED
            return self._record(AdmissionDecision.deny(reason, limiter=fired.name), fingerprint)

        return self._record(AdmissionDecision.allow(), fingerprint)

    def _record(self, decision: AdmissionDecision, fingerprint: VisitorFingerprint) -> AdmissionDecision:
        admission_decisions_total.labels(
            decision="allow" if decision.allowed else "deny",
            reason=decision.reason or "none",
            limiter=decision.limiter or "none",
        ).inc()
        if not decision.allowed:
            logger.info(
                f"Admission denied: {decision.reason}",
                extra={
                    "reason": decision.reason,
                    "limiter": decision.limiter,
                    "fingerprint": fingerprint.short,
                    "fingerprint_source": fingerprint.source,
                },
            )
        return decision
