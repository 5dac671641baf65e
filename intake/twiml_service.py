"""
TwiML Service - builds the voice responses returned to Twilio webhooks.

Two shapes of response exist:
1. Prompt: speak a question, listen for speech, POST whatever was heard
   (even nothing) to the next step. A closing line and hangup follow the
   Gather so the response also covers Twilio giving up on capture.
2. Closing: speak a line and hang up.

Python 3.9 compatible - uses typing.Optional
"""

import logging
import os
from typing import Optional

from twilio.twiml.voice_response import VoiceResponse

from steps.specs import CLOSING_TEXT, StepSpec

logger = logging.getLogger(__name__)


class TwimlService:
    """Service for rendering Twilio voice responses."""

    def __init__(
        self,
        voice: Optional[str] = None,
        language: Optional[str] = None,
        webhook_base_url: Optional[str] = None,
    ):
        """Initialize voice settings.

        WEBHOOK_BASE_URL is optional. When unset, Gather actions are relative
        paths and Twilio resolves them against the URL it last requested,
        which keeps every step of a call on the same host.
        """
        self.voice = voice or os.getenv("TWILIO_TTS_VOICE", "alice")
        self.language = language or os.getenv("TWILIO_TTS_LANG", "en-US")
        base = webhook_base_url if webhook_base_url is not None else os.getenv("WEBHOOK_BASE_URL", "")
        self.webhook_base_url = base.strip().rstrip("/")

        if self.webhook_base_url:
            logger.info(f"TwimlService using absolute callbacks: {self.webhook_base_url}")
        else:
            logger.info("TwimlService using relative callbacks (WEBHOOK_BASE_URL not set)")

    def action_url(self, path: str) -> str:
        """Build the callback URL for a webhook path."""
        return f"{self.webhook_base_url}{path}"

    def _say(self, verb, text: str) -> None:
        verb.say(text, voice=self.voice, language=self.language)

    def build_prompt(
        self,
        prompt_text: str,
        next_step_target: str,
        listen_window: int,
        silence_window: int,
        fallback_text: str = CLOSING_TEXT,
    ) -> str:
        """Speak a prompt and send the caller's answer to the next step.

        Args:
            prompt_text: Question to speak
            next_step_target: Webhook path that receives the SpeechResult
            listen_window: Seconds to wait for speech to start (Gather timeout)
            silence_window: Seconds of trailing silence that end capture
            fallback_text: Spoken before hanging up if capture is abandoned

        Returns:
            TwiML XML string
        """
        response = VoiceResponse()
        gather = response.gather(
            input="speech",
            timeout=listen_window,
            speech_timeout=silence_window,
            action=self.action_url(next_step_target),
            method="POST",
            action_on_empty_result=True,
        )
        self._say(gather, prompt_text)

        self._say(response, fallback_text)
        response.hangup()
        return str(response)

    def build_step_prompt(self, spec: StepSpec) -> str:
        """Build the prompt response for a dialogue step."""
        return self.build_prompt(
            spec.prompt,
            spec.path,
            spec.listen_window,
            spec.silence_window,
        )

    def build_closing(self, closing_text: str = CLOSING_TEXT) -> str:
        """Speak a closing line and end the call."""
        response = VoiceResponse()
        self._say(response, closing_text)
        response.hangup()
        return str(response)


# Singleton instance (created lazily)
_twiml_service: Optional[TwimlService] = None


def get_twiml_service() -> TwimlService:
    """Get or create the TwimlService singleton."""
    global _twiml_service
    if _twiml_service is None:
        _twiml_service = TwimlService()
    return _twiml_service
