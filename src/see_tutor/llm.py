"""Thin async wrapper around the OpenAI API."""
import logging
import time
from typing import Optional

import openai
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

from see_tutor.config import Settings, settings as default_settings
from see_tutor.models import Reference

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (openai.APITimeoutError, openai.APIConnectionError, openai.RateLimitError)


class LLMClient:
    """Schema-constrained JSON completions and web-search reference lookup."""

    def __init__(self, config: Optional[Settings] = None, client: Optional[openai.AsyncOpenAI] = None):
        self.settings = config or default_settings
        self.client = client or openai.AsyncOpenAI(
            api_key=self.settings.OPENAI_API_KEY,
            base_url=self.settings.OPENAI_BASE_URL,
            timeout=self.settings.REQUEST_TIMEOUT,
            max_retries=0,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=stop_after_attempt(max(1, self.settings.MAX_RETRIES)),
            wait=wait_exponential(multiplier=1, min=self.settings.RETRY_WAIT_MIN, max=self.settings.RETRY_WAIT_MAX),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def generate_json(
        self,
        prompt: str,
        *,
        model: str,
        response_format: dict,
        temperature: float,
        max_tokens: int,
    ) -> Optional[str]:
        """Return the raw JSON text of a constrained completion, or None if empty.

        Timeouts, connection errors and rate limits are retried up to
        ``MAX_RETRIES`` attempts in total.
        """
        start_time = time.time()
        async for attempt in self._retrying():
            with attempt:
                response = await self.client.chat.completions.create(
                    model=model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=temperature,
                    max_tokens=max_tokens,
                    response_format=response_format,
                )
        if not response.choices:
            logger.error("LLM returned no choices for %s", response_format["json_schema"]["name"])
            return None
        choice = response.choices[0]
        content = choice.message.content
        if not content:
            logger.error(
                "LLM returned empty content for %s (finish reason: %s)",
                response_format["json_schema"]["name"], choice.finish_reason,
            )
            return None
        usage = response.usage
        logger.debug(
            "LLM call ok: model=%s, %d chars, %.2fs, tokens=%s",
            model, len(content), time.time() - start_time,
            usage.total_tokens if usage else "N/A",
        )
        return content

    async def search_references(self, query: str, *, model: str) -> list[Reference]:
        """Ask a web-search-enabled model and collect the pages it cited."""
        response = await self.client.responses.create(
            model=model,
            input=query,
            tools=[{"type": "web_search_preview"}],
        )
        references = []
        seen = set()
        for item in response.output or []:
            if getattr(item, "type", None) != "message":
                continue
            for content in getattr(item, "content", None) or []:
                for annotation in getattr(content, "annotations", None) or []:
                    if getattr(annotation, "type", None) != "url_citation":
                        continue
                    title = (getattr(annotation, "title", "") or "").strip()
                    uri = (getattr(annotation, "url", "") or "").strip()
                    if not title or not uri or uri in seen:
                        continue
                    seen.add(uri)
                    references.append(Reference(title=title, uri=uri))
        return references
