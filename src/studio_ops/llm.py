"""
Generation Clients — text generation behind a single `generate()` call.

Clients never raise to their caller: on a missing key, transport failure,
non-2xx response or empty completion they log a warning and return a
clearly tagged placeholder instead.

Providers:
- OpenAI (openai SDK)
- Gemini (generateContent REST endpoint via requests)
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests
from openai import OpenAI, OpenAIError

from .config import StudioConfig

logger = logging.getLogger(__name__)

PLACEHOLDER_TAG = "[Mock LLM Response]"


def placeholder_response(prompt: str) -> str:
    return f"{PLACEHOLDER_TAG} Generated response for prompt: {prompt[:50]}..."


def is_placeholder(text: Optional[str]) -> bool:
    return not text or text.startswith(PLACEHOLDER_TAG)


class GenerationClient(ABC):
    """Remote text-generation provider."""

    @abstractmethod
    def generate(self, prompt: str, temperature: float = 0.7) -> str:
        """Return generated text. Must not raise."""


class OpenAIGenerationClient(GenerationClient):
    """OpenAI chat completions."""

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini", timeout: float = 60.0):
        self.model = model
        self._client: Optional[OpenAI] = None
        if api_key:
            self._client = OpenAI(api_key=api_key, timeout=timeout)
            logger.info(f"OpenAI client initialized: model={model}")

    def generate(self, prompt: str, temperature: float = 0.7) -> str:
        if self._client is None:
            logger.warning("OpenAI API key not set, using placeholder response")
            return placeholder_response(prompt)

        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
            )
            text = response.choices[0].message.content if response.choices else None
        except OpenAIError as e:
            logger.warning(f"OpenAI call failed, using placeholder response: {e}")
            return placeholder_response(prompt)

        if not text:
            logger.warning("OpenAI returned an empty completion, using placeholder response")
            return placeholder_response(prompt)
        return text


class GeminiGenerationClient(GenerationClient):
    """Google Gemini generateContent endpoint."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-pro",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def generate(self, prompt: str, temperature: float = 0.7) -> str:
        if not self.api_key:
            logger.warning("Gemini API key not set, using placeholder response")
            return placeholder_response(prompt)

        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": temperature},
        }

        try:
            resp = self.session.post(url, params={"key": self.api_key}, json=body, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except requests.RequestException as e:
            logger.warning(f"Gemini call failed, using placeholder response: {e}")
            return placeholder_response(prompt)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Unexpected Gemini response shape, using placeholder response: {e}")
            return placeholder_response(prompt)

        if not text:
            logger.warning("Gemini returned no text, using placeholder response")
            return placeholder_response(prompt)
        return text


def create_generation_client(config: StudioConfig) -> Optional[GenerationClient]:
    """Gemini if configured, otherwise OpenAI, otherwise no generation at all."""
    provider = config.llm_provider
    if provider == "gemini":
        return GeminiGenerationClient(config.llm.gemini_api_key, model=config.llm.gemini_model)
    if provider == "openai":
        return OpenAIGenerationClient(config.llm.openai_api_key, model=config.llm.openai_model)
    logger.info("No generation provider configured, decision units use rule-based logic")
    return None
