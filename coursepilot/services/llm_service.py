"""
Service module wrapping the hosted chat-completion model.

Every generating endpoint makes exactly one call through ``LLMService.complete``.
"""
import logging
from typing import Optional
import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from coursepilot.config import Config

logger = logging.getLogger(__name__)


class InferenceError(Exception):
    """The provider call failed or returned no usable text."""


class MissingCredentialError(InferenceError):
    """No API key is configured for the provider."""


class RateLimitError(InferenceError):
    """The provider rejected the call because the quota is exhausted."""


class LLMService:
    """
    Thin client over the Gemini API.

    Attributes:
        api_key (str): Provider API key, read from configuration when not given
        model_name (str): Gemini model identifier
        timeout (float): Per-call timeout in seconds
    """
    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.api_key = api_key if api_key is not None else Config.GEMINI_API_KEY
        self.model_name = model_name or Config.GEMINI_MODEL
        self.timeout = timeout or Config.LLM_TIMEOUT_SECONDS
        self._configured = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    def _get_model(self, system_prompt: str):
        """
        Build a model bound to the given system prompt.

        A fresh model is built on every call and never stored.

        Raises:
            MissingCredentialError: If no API key is configured
        """
        if not self.has_credentials:
            logger.error("GEMINI_API_KEY is not set")
            raise MissingCredentialError("GEMINI_API_KEY environment variable is not configured")

        if not self._configured:
            genai.configure(api_key=self.api_key)
            self._configured = True

        return genai.GenerativeModel(self.model_name, system_instruction=system_prompt)

    def complete(self, system_prompt: str, user_prompt: str,
                 temperature: float = 0.3, max_tokens: int = 1000) -> str:
        """
        Run a single chat completion.

        Args:
            system_prompt (str): Instructions for the model
            user_prompt (str): The request itself
            temperature (float): Sampling temperature
            max_tokens (int): Output token limit

        Returns:
            str: The completion text

        Raises:
            MissingCredentialError: If no API key is configured
            RateLimitError: If the provider reports quota exhaustion
            InferenceError: For any other provider failure or an empty completion
        """
        model = self._get_model(system_prompt)
        logger.info(f"Calling {self.model_name} (temperature={temperature}, max_tokens={max_tokens})")

        try:
            response = model.generate_content(
                user_prompt,
                generation_config=genai.GenerationConfig(
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                ),
                request_options={"timeout": self.timeout},
            )
        except google_exceptions.ResourceExhausted as e:
            logger.warning(f"Gemini rate limit hit: {str(e)}")
            raise RateLimitError(f"Gemini API error: 429 - {str(e)}") from e
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Gemini API error: {str(e)}")
            raise InferenceError(f"Gemini API error: {str(e)}") from e
        except Exception as e:
            # Transport failures raised outside google.api_core
            logger.error(f"Gemini request failed: {str(e)}")
            raise InferenceError(f"Gemini request failed: {str(e)}") from e

        try:
            text = response.text
        except ValueError as e:
            # Raised by the SDK when the candidate was blocked or has no parts
            raise InferenceError(f"Gemini returned no text: {str(e)}") from e

        if not text or not text.strip():
            raise InferenceError("Gemini returned an empty completion")

        logger.info("Gemini response received successfully")
        logger.debug(f"Raw content preview: {text[:500]}")
        return text
