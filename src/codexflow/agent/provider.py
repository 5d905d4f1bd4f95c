"""LLM provider interface, Gemini implementation and the timeout race."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Protocol

from google import genai
from google.genai import types

from codexflow import config
from codexflow.errors import UpstreamError

logger = logging.getLogger(__name__)

API_KEY_TEST_PROMPT = "Hello, this is a test request to validate the API key."

# Model calls run here so the caller can stop waiting. A call that loses the
# race keeps its worker until the client's HTTP timeout tears it down.
_executor = ThreadPoolExecutor(max_workers=None, thread_name_prefix="gemini")


class GenerationProvider(Protocol):
    """Protocol for text generation providers."""

    def generate(self, prompt: str, system: str | None = None) -> str:
        """Generate text from a prompt, returning the response string."""
        ...


class GeminiProvider:
    """Gemini text generation."""

    def __init__(
        self,
        api_key: str | None = None,
        generation_model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        api_key = api_key if api_key is not None else config.GOOGLE_API_KEY
        if not api_key:
            raise UpstreamError("GOOGLE_API_KEY environment variable is not set")
        timeout = timeout or config.AI_REQUEST_TIMEOUT
        self._client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)),
        )
        self._generation_model = generation_model or config.GEMINI_MODEL

    def generate(self, prompt: str, system: str | None = None) -> str:
        """Generate text using Gemini.

        Args:
            prompt: The user prompt.
            system: Optional system instruction.

        Returns:
            The generated text response ("" if the model returned no text).
        """
        logger.debug("Generate via %s (%d char prompt)", self._generation_model, len(prompt))
        t0 = time.perf_counter()
        gen_config = None
        if system:
            gen_config = types.GenerateContentConfig(
                system_instruction=system,
            )
        response = self._client.models.generate_content(
            model=self._generation_model,
            contents=prompt,
            config=gen_config,
        )
        text = response.text or ""
        logger.debug("Generate complete: %d chars, %.0fms", len(text), (time.perf_counter() - t0) * 1000)
        return text


def generate_with_timeout(provider: GenerationProvider, prompt: str, timeout: float) -> str:
    """Run ``provider.generate`` and wait at most ``timeout`` seconds.

    Raises:
        UpstreamError: On timeout, or wrapping any exception the provider raised.
    """
    future = _executor.submit(provider.generate, prompt)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeoutError:
        future.cancel()
        logger.warning("AI request abandoned after %.1fs", timeout)
        raise UpstreamError("AI request timed out") from None
    except UpstreamError:
        raise
    except Exception as e:
        raise UpstreamError(str(e) or type(e).__name__) from e


def mask_api_key(api_key: str) -> str:
    """First 4 and last 4 characters, or ``****`` for short keys."""
    if len(api_key) > 8:
        return f"{api_key[:4]}...{api_key[-4:]}"
    return "****"


def validate_api_key(api_key: str, timeout: float | None = None) -> bool:
    """Issue a trivial request with ``api_key``; True if the provider accepts it.

    The key is not stored anywhere.
    """
    timeout = timeout or config.AI_REQUEST_TIMEOUT
    try:
        provider = GeminiProvider(api_key=api_key, timeout=timeout)
        generate_with_timeout(provider, API_KEY_TEST_PROMPT, timeout)
    except UpstreamError as e:
        logger.warning("API key validation failed: %s", e)
        return False
    except Exception:
        logger.exception("API key validation failed")
        return False
    return True
