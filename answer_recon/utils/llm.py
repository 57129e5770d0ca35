"""
Generative model client.

Thin wrapper around the Mistral chat completions endpoint. Responses
are returned as raw text; turning them into structured data is the job
of the extraction module.
"""

import logging
from typing import Optional

import requests

from ..config import LLMConfig

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """Raised when the model endpoint fails or returns an unexpected shape."""


class MistralClient:
    """Chat completion client for the Mistral API."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        session: Optional[requests.Session] = None
    ):
        self.config = config or LLMConfig()
        if not self.config.api_key:
            raise LLMError("Mistral API key not set (MISTRAL_API_KEY)")
        self.session = session or requests.Session()

    def generate(self, prompt: str) -> str:
        """
        Send a prompt and return the assistant's reply text.

        Raises:
            LLMError: On transport errors, non-2xx status or a malformed body
        """
        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": self.config.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

        logger.debug(f"Calling {self.config.model} ({len(prompt)} chars)")
        try:
            response = self.session.post(
                self.config.api_url,
                json=payload,
                headers=headers,
                timeout=self.config.timeout
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise LLMError(f"Mistral request failed: {e}") from e
        except ValueError as e:
            raise LLMError(f"Mistral returned invalid JSON: {e}") from e

        try:
            text = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Unexpected Mistral response shape: {e}") from e

        logger.debug(f"Model response: {text[:500]}")
        return text
