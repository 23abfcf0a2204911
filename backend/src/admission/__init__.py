"""Admission control: fingerprints, limiters and the controller"""

from .controller import (
    AdmissionController,
    AdmissionDecision,
    REASON_RATE_LIMITED,
    REASON_BLOCKED,
    REASON_BOT_SUSPECTED,
    REASON_SERVICE_UNAVAILABLE,
)
from .fingerprint import FingerprintHasher, VisitorFingerprint, client_network_address, normalize_address
from .limits import AdmissionLimits, build_window_limits

__all__ = [
    "AdmissionController",
    "AdmissionDecision",
    "REASON_RATE_LIMITED",
    "REASON_BLOCKED",
    "REASON_BOT_SUSPECTED",
    "REASON_SERVICE_UNAVAILABLE",
    "FingerprintHasher",
    "VisitorFingerprint",
    "client_network_address",
    "normalize_address",
    "AdmissionLimits",
    "build_window_limits",
]
