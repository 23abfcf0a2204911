"""Content screening and rewrite pipeline"""

from .content_pipeline import (
    Blocked,
    CATEGORY_MESSAGES,
    ContentPipeline,
    Improved,
    PipelineResult,
    category_message,
)

__all__ = [
    "Blocked",
    "CATEGORY_MESSAGES",
    "ContentPipeline",
    "Improved",
    "PipelineResult",
    "category_message",
]
