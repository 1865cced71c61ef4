"""Language model gateway: prompt in, cleaned text out.

The LLMGateway protocol is what services depend on. OllamaGateway talks to a
local Ollama server over HTTP; GatewayFake (``app.llm.gateway_fake``) serves
scripted replies for tests and for running without an inference server.
"""

import re
from typing import Protocol, runtime_checkable

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from app.core.config import Settings
from app.core.exceptions import GatewayError

logger = structlog.get_logger(__name__)

_THINK_BLOCK_RE = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
# A reply cut off mid-reasoning leaves an opening tag with no close
_UNCLOSED_THINK_RE = re.compile(r"<think>.*\Z", re.IGNORECASE | re.DOTALL)


def strip_reasoning(text: str) -> str:
    """Remove every ``<think>...</think>`` block and trim surrounding whitespace.

    An unterminated ``<think>`` drops everything after it.
    """
    text = _THINK_BLOCK_RE.sub("", text.strip())
    return _UNCLOSED_THINK_RE.sub("", text).strip()


@runtime_checkable
class LLMGateway(Protocol):
    """Anything that turns a prompt into generated text.

    Implementations raise GatewayError on any backend failure.
    """

    async def generate(self, prompt: str, temperature: float | None = None) -> str:
        ...


class OllamaGateway:
    """Calls ``POST {base_url}/api/generate`` with streaming disabled."""

    def __init__(
        self,
        base_url: str,
        model: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 120.0,
        max_attempts: int = 2,
        wait: wait_base | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.max_attempts = max(1, max_attempts)
        self._wait = wait or wait_exponential(multiplier=0.5, min=0.5, max=4)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def generate(self, prompt: str, temperature: float | None = None) -> str:
        payload: dict = {"model": self.model, "prompt": prompt, "stream": False}
        if temperature is not None:
            payload["temperature"] = temperature

        url = f"{self.base_url}/api/generate"
        try:
            # Only connection-level failures are retried; HTTP errors are final
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(httpx.TransportError),
                stop=stop_after_attempt(self.max_attempts),
                wait=self._wait,
                reraise=True,
                before_sleep=lambda rs: logger.warning(
                    "ollama_transport_retrying",
                    attempt=rs.attempt_number,
                    error=str(rs.outcome.exception()),
                ),
            ):
                with attempt:
                    response = await self._client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("ollama_request_failed", url=url, error=str(exc), error_type=type(exc).__name__)
            raise GatewayError(f"Ollama request failed: {exc}") from exc

        if not response.is_success:
            logger.error("ollama_bad_status", url=url, status_code=response.status_code, body=response.text[:500])
            raise GatewayError(f"Ollama API request failed with status {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise GatewayError("Ollama returned a non-JSON body") from exc

        text = data.get("response") if isinstance(data, dict) else None
        if text is None:
            text = ""
        if not isinstance(text, str):
            raise GatewayError("Ollama response field is not a string")

        return strip_reasoning(text)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def build_gateway(settings: Settings) -> LLMGateway:
    """Create the process-wide gateway from settings."""
    if settings.use_fake_llm:
        from app.llm.gateway_fake import GatewayFake

        logger.info("llm_gateway_selected", type="GatewayFake")
        return GatewayFake()

    logger.info("llm_gateway_selected", type="OllamaGateway", base_url=settings.ollama_base_url, model=settings.ollama_model)
    return OllamaGateway(
        base_url=settings.ollama_base_url,
        model=settings.ollama_model,
        timeout=settings.llm_timeout_seconds,
        max_attempts=settings.llm_max_attempts,
    )
