"""AI gateway: one logical generate call, retried and bounded in time.

Provider failures never escape as exceptions. Every outcome is a string
that can be shown in place of the artifact; ``is_ai_error`` tells the
failure strings apart from real replies.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

from grantflow.domain.errors import ProviderError, ProviderErrorKind
from grantflow.domain.models.ai_request import AIRequest, AIResponse
from grantflow.domain.providers.ai_provider import AIProvider

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
DEFAULT_CEILING_SECONDS = 180

EXHAUSTED_MESSAGE = "Request failed after multiple retries — please try again."
NO_RESPONSE_MESSAGE = "No response — try again."

# Base delay in seconds, multiplied by the 1-based attempt number
_BACKOFF_BASE: dict[ProviderErrorKind, float] = {
    ProviderErrorKind.RATE_LIMITED: 10,
    ProviderErrorKind.OVERLOADED: 15,
    ProviderErrorKind.TRANSPORT: 5,
}

AI_ERROR_PREFIXES = (
    "Error",
    "Rate limit",
    "Connection",
    "Request failed",
    "No response",
    "The AI service",
)


def is_ai_error(text: str | None) -> bool:
    """True for empty replies and the failure strings the gateway returns."""
    return not text or text.startswith(AI_ERROR_PREFIXES)


@dataclass(frozen=True, slots=True)
class GatewayReply:
    """Outcome of one logical call.

    Attributes:
        text: Reply text or a failure string
        response: Provider response when an attempt succeeded
        attempts: Number of provider calls made
    """

    text: str
    response: AIResponse | None
    attempts: int

    @property
    def ok(self) -> bool:
        return self.response is not None and not is_ai_error(self.text)


class AIGatewayClient:
    """Sends requests to a provider with retry and an overall ceiling.

    Attempts are strictly sequential. Rate limits, overloads and transport
    failures are retried up to ``max_retries`` times; any other provider
    error is returned immediately as ``"Error: <message>"``.

    ``sleep`` and ``clock`` are injectable so tests can run the retry
    schedule without waiting.
    """

    def __init__(
        self,
        provider: AIProvider,
        *,
        max_retries: int = MAX_RETRIES,
        ceiling_seconds: float = DEFAULT_CEILING_SECONDS,
        attempt_timeout: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.max_retries = max_retries
        self.ceiling_seconds = ceiling_seconds
        self.attempt_timeout = attempt_timeout
        self._sleep = sleep
        self._clock = clock

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        search_enabled: bool = False,
        max_output_tokens: int = 1500,
    ) -> str:
        request = AIRequest(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            search_enabled=search_enabled,
            max_output_tokens=max_output_tokens,
        )
        return self.send(request).text

    def send(self, request: AIRequest) -> GatewayReply:
        deadline = self._clock() + self.ceiling_seconds
        attempts = 0

        for attempt in range(self.max_retries + 1):
            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.warning(f"AI request exceeded {self.ceiling_seconds}s ceiling")
                return GatewayReply(EXHAUSTED_MESSAGE, None, attempts)

            timeout = min(remaining, self.attempt_timeout) if self.attempt_timeout else remaining
            attempts += 1
            try:
                response = self.provider.complete(request, timeout=timeout)
            except ProviderError as e:
                if not e.transient:
                    logger.warning(f"AI request failed (status={e.status_code}): {e.message}")
                    return GatewayReply(f"Error: {e.message}", None, attempts)
                if attempt >= self.max_retries:
                    break

                delay = self._backoff(e, attempt)
                if self._clock() + delay > deadline:
                    logger.warning(
                        f"AI request abandoned: {delay}s backoff would pass the "
                        f"{self.ceiling_seconds}s ceiling"
                    )
                    return GatewayReply(EXHAUSTED_MESSAGE, None, attempts)

                logger.warning(
                    f"AI request {e.kind.value}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                self._sleep(delay)
                continue

            text = response.text
            logger.debug(
                f"AI reply: {len(text)} chars, tokens in={response.input_tokens} "
                f"out={response.output_tokens}"
            )
            if not text.strip():
                return GatewayReply(NO_RESPONSE_MESSAGE, response, attempts)
            return GatewayReply(text, response, attempts)

        logger.warning(f"AI request failed after {attempts} attempts")
        return GatewayReply(EXHAUSTED_MESSAGE, None, attempts)

    @staticmethod
    def _backoff(error: ProviderError, attempt: int) -> float:
        if error.kind == ProviderErrorKind.RATE_LIMITED and error.retry_after:
            return error.retry_after
        return _BACKOFF_BASE[error.kind] * (attempt + 1)
