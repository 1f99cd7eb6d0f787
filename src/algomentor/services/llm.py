"""LLM service that turns a tutoring transcript into a Gemini reply."""

from typing import Any, Dict, List, Optional

import google.generativeai as genai
import structlog
from google.api_core import exceptions

from ..config import CLIENT_CREDENTIAL, ConfigProvider
from ..domain.models import Author, Transcript
from .personas import TutorProfile

logger = structlog.get_logger()

FALLBACK_REPLY = "I couldn't generate a response. Please try again."
RATE_LIMIT_REPLY = (
    "I am currently receiving too many requests! "
    "Please wait about 60 seconds and try submitting again."
)

# Provider vocabulary stays here; the transcript only knows Author.
PROVIDER_ROLES = {
    Author.USER: "user",
    Author.ASSISTANT: "model",
}


def derive_history(transcript: Transcript) -> List[Dict[str, Any]]:
    """Build the provider history for every turn before the pending one.

    Gemini requires history to open with a user turn, so any leading run of
    model turns (the session greeting, for one) is dropped.
    """
    history = [
        {"role": PROVIDER_ROLES[message.author], "parts": [{"text": message.text}]}
        for message in transcript.messages[:-1]
    ]
    start = 0
    while start < len(history) and history[start]["role"] == "model":
        start += 1
    return history[start:]


def extract_text(response: Any) -> str:
    """Return the text of the first candidate, or an empty string."""
    candidates = getattr(response, "candidates", None)
    if not candidates:
        return ""
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    return "".join(getattr(part, "text", None) or "" for part in parts)


def describe_error(error: BaseException) -> str:
    return str(error) or "An error occurred"


def is_rate_limited(error: BaseException) -> bool:
    """Detect provider quota errors by status code or description."""
    if isinstance(error, exceptions.ResourceExhausted):
        return True
    status = getattr(error, "code", None)
    if status is None:
        status = getattr(getattr(error, "response", None), "status_code", None)
    if status == 429:
        return True
    description = str(error).lower()
    return "429" in description or "quota" in description


class LLMService:
    """Tutor replies from Google's Gemini chat sessions.

    Every call is independent: it builds its own model and chat session from
    the transcript snapshot it is given and never raises to the caller.
    """

    def __init__(
        self,
        config: ConfigProvider,
        profile: TutorProfile,
        model_name: str = "gemini-2.5-flash",
        credential_name: str = CLIENT_CREDENTIAL,
    ) -> None:
        self.config = config
        self.profile = profile
        self.model_name = model_name
        self.credential_name = credential_name
        self._configured_key: Optional[str] = None
        logger.info(
            "llm_service_init",
            model=model_name,
            profile=profile.name,
            credential=credential_name,
        )

    @property
    def missing_credential_reply(self) -> str:
        return f"{self.credential_name} is not set. Please add it to your .env file."

    def _error_reply(self, error: Exception) -> str:
        return (
            f"I encountered an error: {describe_error(error)}. "
            f"Please make sure {self.credential_name} is set in your .env file."
        )

    def _system_instruction(self) -> Dict[str, Any]:
        return {"role": "system", "parts": [{"text": self.profile.system_instruction}]}

    def _configure(self, api_key: str) -> None:
        # genai keeps its client in module state; only touch it when the key changes.
        if api_key != self._configured_key:
            genai.configure(api_key=api_key)
            self._configured_key = api_key

    def _build_model(self, api_key: str) -> "genai.GenerativeModel":
        self._configure(api_key)
        kwargs: Dict[str, Any] = {"system_instruction": self._system_instruction()}
        generation_config = self.profile.generation_config()
        if generation_config is not None:
            kwargs["generation_config"] = generation_config
        return genai.GenerativeModel(self.model_name, **kwargs)

    async def get_reply(self, transcript: Transcript) -> str:
        """Answer the user turn at the end of ``transcript``."""
        api_key: Optional[str] = self.config.get_credential(self.credential_name)
        if not api_key:
            logger.warning("reply_missing_credential", credential=self.credential_name)
            return self.missing_credential_reply

        pending = transcript.last
        if pending is None or pending.author is not Author.USER:
            logger.warning(
                "reply_invalid_transcript",
                length=len(transcript),
                last_author=pending.author.value if pending else None,
            )
            return FALLBACK_REPLY

        try:
            history = derive_history(transcript)
            model = self._build_model(api_key)
            # An empty history list is not the same as no history for some SDK versions.
            chat = model.start_chat(history=history) if history else model.start_chat()
            response = await chat.send_message_async(pending.text)
            text = extract_text(response)
        except exceptions.ResourceExhausted as e:
            logger.warning("gemini_quota_exhausted", error=describe_error(e))
            return RATE_LIMIT_REPLY
        except Exception as e:
            if is_rate_limited(e):
                logger.warning("gemini_rate_limited", error=describe_error(e))
                return RATE_LIMIT_REPLY
            logger.error("response_generation_error", error=describe_error(e))
            return self._error_reply(e)

        if not text:
            logger.warning("gemini_empty_response", model=self.model_name)
            return FALLBACK_REPLY
        return text
