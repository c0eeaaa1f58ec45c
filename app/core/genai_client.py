# app/core/genai_client.py
import asyncio
import logging
from typing import Optional, Dict, Any, List, Union
import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from app.core.config import settings

logger = logging.getLogger(__name__)

# Initialize Gemini API
genai.configure(api_key=settings.GOOGLE_API_KEY)

DEFAULT_GENERATION_CONFIG: Dict[str, Any] = {
    "temperature": settings.TUTOR_TEMPERATURE,
    "top_p": 0.8,
    "top_k": 40,
    "max_output_tokens": settings.TUTOR_MAX_OUTPUT_TOKENS,
}


class AIServiceError(Exception):
    """Raised when the answer-generation service cannot produce a response."""


class GeminiClientWithRetry:
    """Gemini client with retry logic and error handling."""

    DEFAULT_SAFETY_SETTINGS = [
        {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
        {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
        {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
        {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    ]

    def __init__(self, model_name: str = settings.GEMINI_MODEL):
        self.model_name = model_name
        self.model = genai.GenerativeModel(model_name)
        self.max_retries = 2
        self.base_delay = 1.0  # seconds
        self.max_delay = 30.0  # seconds

    def _model_for(self, system_instruction: Optional[str]):
        if not system_instruction:
            return self.model
        return genai.GenerativeModel(self.model_name, system_instruction=system_instruction)

    async def generate_content_async(
        self,
        contents: Union[str, List[Any]],
        generation_config: Optional[Dict[str, Any]] = None,
        safety_settings: Optional[List[Dict[str, Any]]] = None,
        system_instruction: Optional[str] = None,
    ) -> Any:
        """
        Generate content with retry logic and error handling.

        Args:
            contents: Prompt text or a list of parts (text and inline blobs)
            generation_config: Optional generation configuration
            safety_settings: Optional safety settings
            system_instruction: Optional per-call system instruction

        Returns:
            Generated response

        Raises:
            AIServiceError: If all retries are exhausted
        """
        generation_config = generation_config or DEFAULT_GENERATION_CONFIG.copy()
        safety_settings = safety_settings or self.DEFAULT_SAFETY_SETTINGS.copy()
        model = self._model_for(system_instruction)

        last_exception = None

        for attempt in range(self.max_retries + 1):
            try:
                logger.info(f"Attempting Gemini API call (attempt {attempt + 1}/{self.max_retries + 1})")

                response = await model.generate_content_async(
                    contents,
                    generation_config=generation_config,
                    safety_settings=safety_settings,
                )
                self._validate_response(response)

                logger.info("Gemini API call successful")
                return response

            except (google_exceptions.InternalServerError,
                    google_exceptions.ResourceExhausted,
                    google_exceptions.DeadlineExceeded,
                    google_exceptions.ServiceUnavailable) as e:
                last_exception = e

                if attempt < self.max_retries:
                    delay = self._calculate_delay(e, attempt)
                    logger.warning(f"Gemini API {type(e).__name__} (attempt {attempt + 1}): {str(e)}")
                    logger.info(f"Retrying in {delay} seconds...")
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"All retry attempts exhausted for {type(e).__name__}")
                break

            except (google_exceptions.InvalidArgument, google_exceptions.PermissionDenied) as e:
                # Not retryable
                last_exception = e
                logger.error(f"Gemini API {type(e).__name__}: {str(e)}")
                break

            except ValueError as e:
                # Empty or blocked response
                last_exception = e
                logger.warning(f"Gemini returned an unusable response: {str(e)}")
                break

        self._raise_user_friendly_error(last_exception)

    def _validate_response(self, response: Any) -> None:
        if not response or not hasattr(response, "text"):
            raise ValueError("Invalid response from Gemini API")

        if not response.text or response.text.strip() == "":
            raise ValueError("Empty response from Gemini API")

    def _calculate_delay(self, exception: Exception, attempt: int) -> float:
        if isinstance(exception, google_exceptions.ResourceExhausted):
            # Longer delay for quota issues
            return min(self.base_delay * (3 ** attempt), self.max_delay)
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    def _raise_user_friendly_error(self, last_exception: Exception) -> None:
        logger.error(
            f"Gemini API failed after {self.max_retries + 1} attempts. Last error: {str(last_exception)}"
        )
        if isinstance(last_exception, google_exceptions.ResourceExhausted):
            raise AIServiceError("AI service is currently experiencing high demand. Please try again in a few minutes.") from last_exception
        if isinstance(last_exception, google_exceptions.PermissionDenied):
            raise AIServiceError("AI service configuration error. Please contact support.") from last_exception
        if isinstance(last_exception, google_exceptions.InvalidArgument):
            raise AIServiceError("Invalid request format. Please try rephrasing your question.") from last_exception
        raise AIServiceError("AI service is temporarily unavailable. Please try again later.") from last_exception


_gemini_client: Optional[GeminiClientWithRetry] = None


def get_gemini_model() -> GeminiClientWithRetry:
    """Return the shared Gemini client with retry/backoff handling."""
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = GeminiClientWithRetry()
    return _gemini_client
