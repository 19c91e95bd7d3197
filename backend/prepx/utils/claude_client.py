from anthropic import AsyncAnthropic, APIStatusError, APIError, APIConnectionError, APITimeoutError
from typing import Optional, Dict, List, Any, Union
import asyncio
import random
import time
import httpx

from prepx.core.config import settings
from prepx.core.exceptions import AIServiceError
from prepx.core.logging_config import logger
from prepx.utils.response_parser import extract_json

# Retry configuration - loaded from settings
MAX_RETRIES = settings.CLAUDE_MAX_RETRIES
BASE_DELAY = settings.CLAUDE_RETRY_BASE_DELAY
MAX_DELAY = settings.CLAUDE_RETRY_MAX_DELAY
REQUEST_TIMEOUT = float(settings.CLAUDE_REQUEST_TIMEOUT)
CONNECT_TIMEOUT = float(settings.CLAUDE_CONNECT_TIMEOUT)
RETRYABLE_ERRORS = ['overloaded_error', 'rate_limit_error', 'api_error']


class ClaudeClient:
    """Claude API wrapper used by every AI feature (assistant, generator, ethics, documentary)"""

    def __init__(self):
        self._client: Optional[AsyncAnthropic] = None
        self.haiku_model = settings.CLAUDE_HAIKU_MODEL
        self.sonnet_model = settings.CLAUDE_SONNET_MODEL

    @property
    def is_configured(self) -> bool:
        """True when an API key is present; callers use their fallback otherwise"""
        return bool(settings.ANTHROPIC_API_KEY and settings.ANTHROPIC_API_KEY.strip())

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            client_kwargs: Dict[str, Any] = {"api_key": settings.ANTHROPIC_API_KEY}

            # Only set base_url if it's a non-empty string (gateway / proxy deployments)
            if settings.ANTHROPIC_BASE_URL and settings.ANTHROPIC_BASE_URL.strip():
                client_kwargs["base_url"] = settings.ANTHROPIC_BASE_URL.strip()
                logger.info(f"Using custom Claude API base URL: {settings.ANTHROPIC_BASE_URL}")

            client_kwargs["timeout"] = httpx.Timeout(
                connect=CONNECT_TIMEOUT,
                read=REQUEST_TIMEOUT,
                write=REQUEST_TIMEOUT,
                pool=REQUEST_TIMEOUT
            )
            self._client = AsyncAnthropic(**client_kwargs)
            logger.info(
                f"Claude client initialized: timeout={REQUEST_TIMEOUT}s, "
                f"models=[{self.haiku_model}, {self.sonnet_model}]"
            )
        return self._client

    def _is_retryable_error(self, error: Exception) -> bool:
        """Overload, rate limit and network errors are retried"""
        if isinstance(error, (APIConnectionError, APITimeoutError)):
            return True

        if isinstance(error, (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError)):
            return True

        if isinstance(error, APIStatusError):
            if isinstance(error.body, dict):
                error_type = error.body.get('error', {}).get('type', '')
                if error_type in RETRYABLE_ERRORS:
                    return True
            return error.status_code in [429, 500, 502, 503, 529]

        if isinstance(error, APIError):
            return False

        error_str = str(error).lower()
        return any(err in error_str for err in ['overload', 'rate_limit', 'timeout', 'connection'])

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Exponential backoff with 0-25% jitter"""
        delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY)
        return delay + delay * random.uniform(0, 0.25)

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: str = "sonnet",
        max_tokens: int = None,
        temperature: float = None,
        messages: Optional[List[Dict[str, str]]] = None
    ) -> Dict[str, Any]:
        """
        Generate a completion (non-streaming)

        Args:
            prompt: User prompt
            system_prompt: System prompt
            model: "haiku" or "sonnet"
            max_tokens: Maximum tokens to generate
            temperature: Temperature for generation
            messages: Optional prior conversation turns

        Returns:
            Dict with content, model, token usage and latency_ms
        """
        if not self.is_configured:
            logger.log_ai_event("claude", "not configured", fallback=True)
            raise AIServiceError("ANTHROPIC_API_KEY is not configured")

        model_name = self.sonnet_model if model == "sonnet" else self.haiku_model
        conversation = list(messages or [])
        conversation.append({"role": "user", "content": prompt})

        if max_tokens is None:
            max_tokens = settings.CLAUDE_MAX_TOKENS
        if temperature is None:
            temperature = settings.CLAUDE_TEMPERATURE

        logger.info(f"Claude API: model={model_name}, max_tokens={max_tokens}, prompt_len={len(prompt)}")

        started = time.perf_counter()
        for attempt in range(MAX_RETRIES + 1):
            try:
                response = await self.client.messages.create(
                    model=model_name,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system_prompt or "",
                    messages=conversation
                )

                content = response.content[0].text if response.content else ""
                result = {
                    "content": content,
                    "model": model_name,
                    "input_tokens": response.usage.input_tokens,
                    "output_tokens": response.usage.output_tokens,
                    "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
                    "stop_reason": response.stop_reason,
                    "latency_ms": int((time.perf_counter() - started) * 1000),
                    "id": response.id,
                }
                logger.log_ai_event(
                    model_name, "completion",
                    tokens_used=result["total_tokens"],
                    latency_ms=result["latency_ms"],
                    stop_reason=response.stop_reason,
                )
                return result

            except Exception as e:
                error_type = type(e).__name__
                if self._is_retryable_error(e) and attempt < MAX_RETRIES:
                    delay = self._calculate_retry_delay(attempt)
                    logger.warning(
                        f"Claude API error [{error_type}] (attempt {attempt + 1}/{MAX_RETRIES + 1}), "
                        f"retrying in {delay:.1f}s...",
                        extra={
                            "event_type": "claude_api_retry",
                            "error_type": error_type,
                            "attempt": attempt + 1,
                            "retry_delay": delay
                        }
                    )
                    await asyncio.sleep(delay)
                    continue

                logger.error(
                    f"Claude API error (non-retryable or max retries exceeded): {error_type}: {e}",
                    extra={"event_type": "claude_api_error", "error_type": error_type, "attempt": attempt + 1}
                )
                raise AIServiceError(f"{error_type}: {e}") from e

        raise AIServiceError("Claude API retries exhausted")

    async def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        expect: str = "object",
        **kwargs
    ) -> Union[Dict[str, Any], List[Any]]:
        """
        Generate and parse the first JSON object/array in the reply.

        Raises:
            AIServiceError: upstream failure
            AIResponseParseError: no parseable JSON of the expected shape
        """
        result = await self.generate(prompt, system_prompt=system_prompt, **kwargs)
        return extract_json(result["content"], expect=expect)


claude_client = ClaudeClient()
