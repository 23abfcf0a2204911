"""Domain layer - ports and error taxonomy shared by the relay components"""

from .errors import (
    RelayError,
    AdmissionDenied,
    ContentBlocked,
    PipelineUnavailable,
    DeliveryFailed,
    AccessDenied,
    EncryptionFailure,
    VaultKeyUnavailable,
    ConflictError,
    InvalidStateError,
)

__all__ = [
    "RelayError",
    "AdmissionDenied",
    "ContentBlocked",
    "PipelineUnavailable",
    "DeliveryFailed",
    "AccessDenied",
    "EncryptionFailure",
    "VaultKeyUnavailable",
    "ConflictError",
    "InvalidStateError",
]
