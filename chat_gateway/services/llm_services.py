import time
import logging
from typing import Dict, List, Optional, Sequence

from groq import Groq
from groq import APIConnectionError, APIError, APIResponseValidationError, APIStatusError, APITimeoutError

from chat_gateway.config import (
    GROQ_API_KEY,
    GROQ_BASE_URL,
    LLM_MAX_TOKENS,
    LLM_MODEL,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
)
from chat_gateway.models.exceptions import AIServiceError

# Set up logger
logger = logging.getLogger("llm_service")


class LLMGateway:
    """Single-shot completion calls against the Groq chat API.

    Stateless between calls apart from the lazily built SDK client. The SDK's
    own retry loop is disabled: one request per ``complete`` call, bounded by
    ``timeout`` seconds, and any failure surfaces as ``AIServiceError``.
    """

    def __init__(
        self,
        client: Optional[Groq] = None,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: str = LLM_MODEL,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        timeout: float = LLM_TIMEOUT_SECONDS,
    ):
        self._client = client
        self.api_key = api_key or GROQ_API_KEY
        self.base_url = base_url or GROQ_BASE_URL
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

    def _get_client(self) -> Groq:
        if self._client is None:
            if not self.api_key:
                logger.error("GROQ_API_KEY is not set.")
                raise AIServiceError("AI service is not configured", reason="config")
            self._client = Groq(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def complete(self, history: Sequence[Dict[str, str]], persona: str) -> str:
        """
        Ask the model for the next assistant turn.

        Args:
            history: ordered ``{"role", "content"}`` entries, oldest first.
            persona: system prompt placed ahead of the history.

        Returns:
            str: text content of the first completion choice.

        Raises:
            AIServiceError: timeout, network failure, non-2xx status or a
                response without usable text.
        """
        if not history:
            raise ValueError("history must contain at least one message")

        messages: List[Dict[str, str]] = [{"role": "system", "content": persona}]
        messages.extend({"role": h["role"], "content": h["content"]} for h in history)

        client = self._get_client()
        start_time = time.time()
# ---- try block LLM API call----
        try:
            completion = client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
            )
        except APITimeoutError as e:
            logger.error(f"LLM call timed out after {self.timeout}s: {e}")
            raise AIServiceError("AI service timed out", reason="timeout") from e
        except APIConnectionError as e:
            logger.error(f"LLM connection failed: {e}")
            raise AIServiceError("AI service is unreachable", reason="network") from e
        except APIStatusError as e:
            logger.error(f"LLM returned status {e.status_code}: {e}")
            raise AIServiceError(f"AI service returned status {e.status_code}", reason="status") from e
        except APIResponseValidationError as e:
            logger.error(f"LLM response failed validation: {e}")
            raise AIServiceError("AI service returned an invalid response", reason="malformed") from e
        except APIError as e:
            logger.error(f"Error calling Groq API: {e}")
            raise AIServiceError("AI service request failed", reason="status") from e

        latency_ms = int((time.time() - start_time) * 1000)
        answer = _extract_text(completion)
        if answer is None:
            logger.error(f"LLM response had no text content (model={self.model}, latency={latency_ms}ms)")
            raise AIServiceError("AI service returned an invalid response", reason="malformed")

        logger.info(f"LLM response: model={self.model}, latency={latency_ms}ms, text={answer[:100]!r}...")
        return answer


def _extract_text(completion) -> Optional[str]:
    choices = getattr(completion, "choices", None) or []
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str) or not content.strip():
        return None
    return content
