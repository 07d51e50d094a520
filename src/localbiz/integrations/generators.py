"""AI website generators.

Three implementations share the ``WebsiteGenerator`` protocol:

- ``AnthropicWebsiteGenerator`` calls the Anthropic Messages REST API via
  ``requests`` with a urllib3 retry adapter.
- ``OpenAIWebsiteGenerator`` calls chat completions through the ``openai`` SDK.
- ``SyntheticWebsiteGenerator`` renders a deterministic page locally and is
  used whenever no API key is configured.

Live generators run a quality check on every response and log the findings.

Usage:
    >>> generator = create_website_generator("anthropic", api_key=None)
    >>> html = await generator.generate_website(info, WebsiteTemplate.MODERN_MINIMAL)
"""

import asyncio
import logging
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

import requests
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..exceptions import (
    PermanentServiceError,
    TransientServiceError,
    classify_http_error,
)
from ..quality import check_website_quality
from ..templates import (
    DEFAULT_FEATURES,
    BusinessInfo,
    GeneratorFeature,
    WebsiteTemplate,
    build_website_prompt,
    render_synthetic_site,
)
from ..utils.rate_limiter import TokenBucket

logger = logging.getLogger(__name__)

# Constants
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-6"
DEFAULT_OPENAI_MODEL = "gpt-4o"
MAX_OUTPUT_TOKENS = 16000
TEMPERATURE = 0.7
DEFAULT_TIMEOUT_SECONDS = 300
MAX_RETRIES = 3
BASE_RETRY_DELAY = 2.0
DEFAULT_REQUESTS_PER_SECOND = 1.0

__all__ = [
    "AnthropicWebsiteGenerator",
    "BusinessInfo",
    "OpenAIWebsiteGenerator",
    "SyntheticWebsiteGenerator",
    "WebsiteGenerator",
    "clean_html_response",
    "create_website_generator",
]


def clean_html_response(text: str) -> str:
    """Strip markdown fences and anything outside the HTML document.

    Removes a leading ```html or ``` fence and a trailing ``` fence, drops
    text before ``<!DOCTYPE html>`` and after the last ``</html>`` (both
    matched case-insensitively), then trims whitespace.

    >>> clean_html_response("```html\\n<!DOCTYPE html><html></html>\\n```")
    '<!DOCTYPE html><html></html>'
    """
    cleaned = (text or "").strip()

    if cleaned.startswith("```html"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]

    start = cleaned.lower().find("<!doctype html>")
    if start > 0:
        cleaned = cleaned[start:]

    end = cleaned.lower().rfind("</html>")
    if end != -1:
        cleaned = cleaned[: end + len("</html>")]

    return cleaned.strip()


@runtime_checkable
class WebsiteGenerator(Protocol):
    """Website generation capability used by the generation service."""

    provider_name: str

    def is_in_mock_mode(self) -> bool:
        ...

    async def generate_website(
        self,
        business: BusinessInfo,
        template: WebsiteTemplate,
        features: Sequence[GeneratorFeature] = DEFAULT_FEATURES,
    ) -> str:
        ...


def _log_quality(business: BusinessInfo, template: WebsiteTemplate, html: str) -> None:
    report = check_website_quality(html)
    if report.passed:
        logger.debug(
            "Quality check passed for %s (%s), %d warning(s)",
            business.name,
            template.value,
            len(report.warnings),
        )
        return
    logger.warning(
        "Quality issues for %s (%s): %s",
        business.name,
        template.value,
        "; ".join(report.issues),
    )


class AnthropicWebsiteGenerator:
    """Generator backed by the Anthropic Messages API.

    Attributes:
        api_key: Anthropic API key.
        model: Model name.
        timeout: Request timeout in seconds.
        rate_limiter: Token bucket taken before every API request.
    """

    provider_name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_ANTHROPIC_MODEL,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND,
    ) -> None:
        if not api_key:
            raise ValueError("Anthropic API key required")
        self.api_key = api_key
        self.model = model or DEFAULT_ANTHROPIC_MODEL
        self.timeout = timeout
        self._session = session
        self.rate_limiter = TokenBucket(
            capacity=max(1.0, requests_per_second), refill_rate=requests_per_second
        )
        logger.info("AnthropicWebsiteGenerator initialized (model=%s)", self.model)

    def is_in_mock_mode(self) -> bool:
        return False

    def _get_session(self) -> requests.Session:
        """Get or create a requests session with retry configuration."""
        if self._session is None:
            self._session = requests.Session()

            # Retry transient statuses; the final response is classified below
            retry_strategy = Retry(
                total=MAX_RETRIES,
                backoff_factor=BASE_RETRY_DELAY,
                status_forcelist=[429, 500, 502, 503, 504, 529],
                allowed_methods=["POST"],
                raise_on_status=False,
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self._session.mount("https://", adapter)

        return self._session

    def _complete(self, prompt: str) -> str:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": MAX_OUTPUT_TOKENS,
            "temperature": TEMPERATURE,
            "messages": [{"role": "user", "content": prompt}],
        }

        try:
            response = self._get_session().post(
                ANTHROPIC_API_URL, headers=headers, json=payload, timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise TransientServiceError(
                f"Anthropic request timed out after {self.timeout}s", operation="generate"
            ) from e
        except requests.exceptions.RequestException as e:
            raise TransientServiceError(
                f"Anthropic request failed: {e}", operation="generate"
            ) from e

        if response.status_code >= 400:
            try:
                message = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                message = response.text
            raise classify_http_error(response.status_code, message[:500], "generate")

        result = response.json()
        text = "".join(
            block.get("text", "")
            for block in result.get("content", [])
            if block.get("type") == "text"
        )
        if not text:
            raise PermanentServiceError("Empty content in Anthropic response", operation="generate")

        logger.debug("Anthropic usage: %s", result.get("usage", {}))
        return text

    async def generate_website(
        self,
        business: BusinessInfo,
        template: WebsiteTemplate,
        features: Sequence[GeneratorFeature] = DEFAULT_FEATURES,
    ) -> str:
        """Generate a website and return the cleaned HTML.

        Raises:
            TransientServiceError: On timeouts, rate limits and 5xx responses.
            PermanentServiceError: On authentication or request errors.
        """
        template = WebsiteTemplate(template)
        prompt = build_website_prompt(business, template, features)
        logger.info("Generating %s website for %s via Anthropic", template.value, business.name)

        await self.rate_limiter.acquire()
        loop = asyncio.get_running_loop()
        raw = await loop.run_in_executor(None, self._complete, prompt)
        html = clean_html_response(raw)
        _log_quality(business, template, html)
        return html


class OpenAIWebsiteGenerator:
    """Generator backed by OpenAI chat completions."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_OPENAI_MODEL,
        timeout: int = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[OpenAI] = None,
        requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND,
    ) -> None:
        if not api_key:
            raise ValueError("OpenAI API key required")
        self.model = model or DEFAULT_OPENAI_MODEL
        self.rate_limiter = TokenBucket(
            capacity=max(1.0, requests_per_second), refill_rate=requests_per_second
        )
        self._client = client or OpenAI(
            api_key=api_key, timeout=timeout, max_retries=MAX_RETRIES
        )
        logger.info("OpenAIWebsiteGenerator initialized (model=%s)", self.model)

    def is_in_mock_mode(self) -> bool:
        return False

    def _complete(self, prompt: str) -> str:
        try:
            completion = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=MAX_OUTPUT_TOKENS,
                temperature=TEMPERATURE,
            )
        except (APITimeoutError, APIConnectionError) as e:
            raise TransientServiceError(
                f"OpenAI request failed: {e}", operation="generate"
            ) from e
        except APIStatusError as e:
            raise classify_http_error(e.status_code, e.message, "generate") from e

        if not completion.choices or not completion.choices[0].message.content:
            raise PermanentServiceError("Empty content in OpenAI response", operation="generate")
        return completion.choices[0].message.content

    async def generate_website(
        self,
        business: BusinessInfo,
        template: WebsiteTemplate,
        features: Sequence[GeneratorFeature] = DEFAULT_FEATURES,
    ) -> str:
        template = WebsiteTemplate(template)
        prompt = build_website_prompt(business, template, features)
        logger.info("Generating %s website for %s via OpenAI", template.value, business.name)

        await self.rate_limiter.acquire()
        loop = asyncio.get_running_loop()
        raw = await loop.run_in_executor(None, self._complete, prompt)
        html = clean_html_response(raw)
        _log_quality(business, template, html)
        return html


class SyntheticWebsiteGenerator:
    """Offline generator that renders a fixed page per business and template."""

    provider_name = "mock"

    def __init__(self) -> None:
        logger.info("Website generator running in mock mode")

    def is_in_mock_mode(self) -> bool:
        return True

    async def generate_website(
        self,
        business: BusinessInfo,
        template: WebsiteTemplate,
        features: Sequence[GeneratorFeature] = DEFAULT_FEATURES,
    ) -> str:
        return render_synthetic_site(business, WebsiteTemplate(template), features)


def create_website_generator(
    provider: str = "anthropic",
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND,
) -> WebsiteGenerator:
    """Pick a generator for the provider, or the synthetic one without a key.

    Raises:
        ValueError: If a key is given for an unknown provider.
    """
    if not api_key:
        return SyntheticWebsiteGenerator()

    provider = (provider or "anthropic").lower()
    if provider == "anthropic":
        return AnthropicWebsiteGenerator(
            api_key,
            model=model or DEFAULT_ANTHROPIC_MODEL,
            requests_per_second=requests_per_second,
        )
    if provider == "openai":
        return OpenAIWebsiteGenerator(
            api_key,
            model=model or DEFAULT_OPENAI_MODEL,
            requests_per_second=requests_per_second,
        )
    raise ValueError(f"Unknown AI provider: {provider}")
