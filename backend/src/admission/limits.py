"""Admission limiter definitions.

Four independent limiters, each a rolling window:

    pair      (fingerprint, recipient)  3 / 24h
    sender    fingerprint              10 / 1h
    fallback  network address           2 / 1h  (only without a visitor token)
    network   network address          20 / 1h  (gross abuse / bots)
"""

from dataclasses import dataclass
from typing import List

from config import Settings
from domain.admission.ports import WindowLimit
from .fingerprint import VisitorFingerprint

LIMITER_PAIR = "pair"
LIMITER_SENDER = "sender"
LIMITER_FALLBACK = "fallback"
LIMITER_NETWORK = "network"


@dataclass(frozen=True)
class AdmissionLimits:
    pair_limit: int = 3
    pair_window_seconds: int = 86_400
    sender_limit: int = 10
    sender_window_seconds: int = 3_600
    fallback_limit: int = 2
    fallback_window_seconds: int = 3_600
    network_limit: int = 20
    network_window_seconds: int = 3_600

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdmissionLimits":
        return cls(
            pair_limit=settings.PAIR_LIMIT,
            pair_window_seconds=settings.PAIR_WINDOW_SECONDS,
            sender_limit=settings.SENDER_LIMIT,
            sender_window_seconds=settings.SENDER_WINDOW_SECONDS,
            fallback_limit=settings.FALLBACK_LIMIT,
            fallback_window_seconds=settings.FALLBACK_WINDOW_SECONDS,
            network_limit=settings.NETWORK_LIMIT,
            network_window_seconds=settings.NETWORK_WINDOW_SECONDS,
        )


def build_window_limits(
    limits: AdmissionLimits,
    fingerprint: VisitorFingerprint,
    recipient_hash: str,
    network_key: str,
) -> List[WindowLimit]:
    """Limiters that apply to one submission, in reporting order."""
    windows = [
        WindowLimit(
            name=LIMITER_PAIR,
            key=f"{LIMITER_PAIR}:{fingerprint.value}:{recipient_hash}",
            limit=limits.pair_limit,
            window_seconds=limits.pair_window_seconds,
        ),
        WindowLimit(
            name=LIMITER_SENDER,
            key=f"{LIMITER_SENDER}:{fingerprint.value}",
            limit=limits.sender_limit,
            window_seconds=limits.sender_window_seconds,
        ),
    ]
    if fingerprint.is_network_fallback:
        windows.append(WindowLimit(
            name=LIMITER_FALLBACK,
            key=f"{LIMITER_FALLBACK}:{network_key}",
            limit=limits.fallback_limit,
            window_seconds=limits.fallback_window_seconds,
        ))
    windows.append(WindowLimit(
        name=LIMITER_NETWORK,
        key=f"{LIMITER_NETWORK}:{network_key}",
        limit=limits.network_limit,
        window_seconds=limits.network_window_seconds,
    ))
    return windows
