"""Content pipeline: screening and rewrite with provider failover.

Providers are tried in order. A provider that errors, times out or
answers outside the contract is skipped and the next one is tried; a
provider that answers "blocked" is authoritative and ends the run. When
no provider produces an answer the pipeline raises PipelineUnavailable,
which is an operational condition and never a content decision.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Sequence, Union

from domain.content.ports import ContentProviderPort, ProviderError
from domain.errors import PipelineUnavailable
from observability.metrics import pipeline_calls_total, pipeline_failovers_total, pipeline_latency_ms

logger = logging.getLogger(__name__)

# User-facing explanation per block category. Fixed strings: the sender's
# text is never quoted back.
CATEGORY_MESSAGES = {
    "harassment": "Your message reads as a personal attack. Focus on behaviour or work, not on the person.",
    "hate": "Your message targets a group or personal characteristic. Please remove that content.",
    "threat": "Your message contains something that reads as a threat. Please remove it.",
    "self_harm": "Your message refers to self-harm. Please remove that content.",
    "sexual": "Your message contains sexual content, which can't be relayed.",
    "personal_data": "Your message contains personal data such as contact details. Please remove it.",
    "spam": "Your message doesn't look like feedback for this person.",
    "other": "Your message can't be relayed as written. Please rephrase it.",
}


def category_message(category: str) -> str:
    return CATEGORY_MESSAGES.get(category, CATEGORY_MESSAGES["other"])


@dataclass(frozen=True)
class Blocked:
    category: str
    reason: str
    provider: str

    @property
    def user_message(self) -> str:
        return category_message(self.category)


@dataclass(frozen=True)
class Improved:
    text: str
    provider: str


PipelineResult = Union[Blocked, Improved]


class ContentPipeline:
    """Runs the combined screen-and-rewrite call against ordered providers."""

    def __init__(self, providers: Sequence[ContentProviderPort], timeout_seconds: float = 20.0):
        self.providers: List[ContentProviderPort] = list(providers)
        self.timeout_seconds = timeout_seconds

    async def evaluate(self, text: str) -> PipelineResult:
        """Screen and rewrite one message.

        Args:
            text: Sender's text (already length-validated)

        Returns:
            Blocked or Improved

        Raises:
            PipelineUnavailable: Every provider failed
        """
        attempts: List[str] = []

        for index, provider in enumerate(self.providers):
            if index > 0:
                pipeline_failovers_total.labels(from_provider=self.providers[index - 1].name).inc()

            start = time.perf_counter()
            try:
                verdict = await asyncio.wait_for(
                    provider.screen_and_rewrite(text),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                pipeline_calls_total.labels(provider=provider.name, status="timeout").inc()
                logger.warning(f"Content provider {provider.name} timed out after {self.timeout_seconds}s")
                attempts.append(f"{provider.name}:timeout")
                continue
            except ProviderError as e:
                pipeline_calls_total.labels(provider=provider.name, status="error").inc()
                logger.warning(f"Content provider {provider.name} failed: {type(e).__name__}: {e}")
                attempts.append(f"{provider.name}:{type(e).__name__}")
                continue
            finally:
                pipeline_latency_ms.labels(provider=provider.name).observe(
                    (time.perf_counter() - start) * 1000
                )

            if verdict.decision == "blocked":
                pipeline_calls_total.labels(provider=provider.name, status="blocked").inc()
                logger.info(
                    f"Content blocked by {provider.name}",
                    extra={"provider": provider.name, "category": verdict.category},
                )
                return Blocked(category=verdict.category, reason=verdict.reason, provider=provider.name)

            pipeline_calls_total.labels(provider=provider.name, status="ok").inc()
            return Improved(text=verdict.rewritten_text.strip(), provider=provider.name)

        logger.error(f"All content providers failed: {attempts}")
        raise PipelineUnavailable(attempts=attempts)
