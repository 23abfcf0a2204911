"""Data retention: sender identity deletion and item redaction"""

from .schemas import RetentionSettings, RetentionStatistics
from .service import RetentionService

__all__ = ["RetentionSettings", "RetentionStatistics", "RetentionService"]
