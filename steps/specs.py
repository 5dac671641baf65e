"""
StepSpec definitions.

This module defines the declarative specification for each dialogue step:
which webhook path it is bound to, what the caller hears, and how long
Twilio listens for the answer. The controller and TwiML builder read these
specs so that the path named in a response and the route that handles it
always come from the same string.
"""
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List


class DialogueStep(str, Enum):
    """Steps that wait for a caller utterance."""
    AWAIT_NAME = "name"
    AWAIT_CALLBACK_NUMBER = "callback"
    AWAIT_CATEGORY = "type"
    AWAIT_TOPIC = "topic"
    AWAIT_URGENCY = "urgency"
    AWAIT_CALLBACK_TIME = "callback_time"


# Webhook paths
INCOMING_CALL_PATH = "/twilio/voice/incoming"
STEP_PATH_PREFIX = "/twilio/voice/step"
SMS_PATH = "/twilio/sms"

# Listen windows (Gather timeout) in seconds
NAME_LISTEN_SECONDS = 3
CALLBACK_NUMBER_LISTEN_SECONDS = 7
CATEGORY_LISTEN_SECONDS = 3
TOPIC_LISTEN_SECONDS = 7
URGENCY_LISTEN_SECONDS = 3
CALLBACK_TIME_LISTEN_SECONDS = 7

# Trailing silence windows (Gather speechTimeout) in seconds
SHORT_SILENCE_SECONDS = 1
LONG_SILENCE_SECONDS = 2

CLOSING_TEXT = "Thank you so much for calling. I'll be in touch soon."
MISSING_STATE_CLOSING_TEXT = "Thanks for calling. Goodbye."


def step_path(step: DialogueStep) -> str:
    """Webhook path for a step, e.g. /twilio/voice/step/name."""
    return f"{STEP_PATH_PREFIX}/{step.value}"


@dataclass(frozen=True)
class StepSpec:
    """
    Specification for a single dialogue step.

    Attributes:
        step: The step this spec describes
        prompt: What the caller hears before Twilio starts listening
        listen_window: Seconds to wait for speech to begin
        silence_window: Seconds of trailing silence that end capture
        description: Human-readable description for debugging
    """
    step: DialogueStep
    prompt: str
    listen_window: int
    silence_window: int
    description: str = ""

    @property
    def path(self) -> str:
        return step_path(self.step)


GREETING_TEMPLATE = (
    "Hi, this is {assistant_name}. I can't take the call right now, but I really "
    "appreciate you calling. Could you tell me your name, please?"
)


STEPS: Dict[DialogueStep, StepSpec] = {
    DialogueStep.AWAIT_NAME: StepSpec(
        step=DialogueStep.AWAIT_NAME,
        prompt=GREETING_TEMPLATE,
        listen_window=NAME_LISTEN_SECONDS,
        silence_window=SHORT_SILENCE_SECONDS,
        description="Caller's name",
    ),
    DialogueStep.AWAIT_CALLBACK_NUMBER: StepSpec(
        step=DialogueStep.AWAIT_CALLBACK_NUMBER,
        prompt=(
            "Thank you. I'm not seeing your callback number on my screen - "
            "could you share the best number to call you back?"
        ),
        listen_window=CALLBACK_NUMBER_LISTEN_SECONDS,
        silence_window=LONG_SILENCE_SECONDS,
        description="Callback number, asked only when caller ID is hidden",
    ),
    DialogueStep.AWAIT_CATEGORY: StepSpec(
        step=DialogueStep.AWAIT_CATEGORY,
        prompt="Thank you. Is this about work, or something personal?",
        listen_window=CATEGORY_LISTEN_SECONDS,
        silence_window=SHORT_SILENCE_SECONDS,
        description="Work or personal",
    ),
    DialogueStep.AWAIT_TOPIC: StepSpec(
        step=DialogueStep.AWAIT_TOPIC,
        prompt="Could you briefly share what it's regarding?",
        listen_window=TOPIC_LISTEN_SECONDS,
        silence_window=LONG_SILENCE_SECONDS,
        description="Work topic",
    ),
    DialogueStep.AWAIT_URGENCY: StepSpec(
        step=DialogueStep.AWAIT_URGENCY,
        prompt="Does this need immediate attention, or can it wait?",
        listen_window=URGENCY_LISTEN_SECONDS,
        silence_window=SHORT_SILENCE_SECONDS,
        description="Immediate or can wait",
    ),
    DialogueStep.AWAIT_CALLBACK_TIME: StepSpec(
        step=DialogueStep.AWAIT_CALLBACK_TIME,
        prompt="Thank you. When would be a good time for me to call you back?",
        listen_window=CALLBACK_TIME_LISTEN_SECONDS,
        silence_window=LONG_SILENCE_SECONDS,
        description="Preferred callback time",
    ),
}


def get_step_spec(step: DialogueStep) -> StepSpec:
    """
    Get the spec for a step.

    Raises:
        KeyError: If the step is not registered
    """
    spec = STEPS[step]
    if step == DialogueStep.AWAIT_NAME:
        # Greeting carries the assistant's name, read at call time
        assistant_name = os.getenv("ASSISTANT_NAME", "Lesia")
        return replace(spec, prompt=spec.prompt.format(assistant_name=assistant_name))
    return spec


def list_step_paths() -> List[str]:
    """All step webhook paths in dialogue order."""
    return [step_path(step) for step in DialogueStep]
