"""
Call dialogue state machine.

This module is the SINGLE SOURCE OF TRUTH for call flow decisions.
Each Twilio webhook round trip maps to one handler here, which:
1. Loads the call's record from the store
2. Applies the caller's utterance (an empty utterance never overwrites
   an earlier answer)
3. Decides the next step, or finalizes the call

    name -> [callback number, hidden caller ID only] -> type
         -> personal: finalize
         -> work: topic -> urgency -> immediate: finalize
                                   -> can wait: callback time -> finalize

Handlers are synchronous and never block on delivery: finalization returns
the Notification inside the StepResult and the web layer sends it in the
background after the response has gone out.
"""
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Optional

from steps.specs import (
    CLOSING_TEXT,
    MISSING_STATE_CLOSING_TEXT,
    DialogueStep,
    get_step_spec,
)

from .classify import (
    CallCategory,
    UrgencyClass,
    classify_category,
    classify_urgency,
    normalize_utterance,
)
from .store import CallNotFoundError, CallRecord, CallStore
from .summary import Notification, build_call_notification

if TYPE_CHECKING:
    from intake.twiml_service import TwimlService

logger = logging.getLogger(__name__)

ACTION_PERSONAL = "Summary sent (personal)"
ACTION_WORK_IMMEDIATE = "Summary sent (work - immediate)"
ACTION_WORK_CAN_WAIT = "Summary sent (work - can wait)"


@dataclass
class StepResult:
    """Outcome of one webhook round trip."""
    twiml: str
    # Step whose answer the response asks for; None when the call ends
    next_step: Optional[DialogueStep] = None
    # Set only by the step that finalizes the call
    notification: Optional[Notification] = None

    @property
    def ends_call(self) -> bool:
        return self.next_step is None


def _capture(field_name: str, utterance: str) -> Callable[[CallRecord], None]:
    """Mutator that stores a non-empty utterance in a record field."""
    def mutate(record: CallRecord) -> None:
        if utterance:
            setattr(record, field_name, utterance)
    return mutate


class DialogueController:
    """Drives a call from the greeting to finalization."""

    def __init__(self, store: CallStore, twiml: "TwimlService"):
        self.store = store
        self.twiml = twiml
        self._handlers: Dict[DialogueStep, Callable[[CallRecord, str], StepResult]] = {
            DialogueStep.AWAIT_NAME: self._on_name,
            DialogueStep.AWAIT_CALLBACK_NUMBER: self._on_callback_number,
            DialogueStep.AWAIT_CATEGORY: self._on_category,
            DialogueStep.AWAIT_TOPIC: self._on_topic,
            DialogueStep.AWAIT_URGENCY: self._on_urgency,
            DialogueStep.AWAIT_CALLBACK_TIME: self._on_callback_time,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def start_call(self, call_id: str, caller_number: Optional[str]) -> StepResult:
        """Create the call's record and ask for the caller's name."""
        self.store.create(call_id, caller_number)
        return self._ask(call_id, DialogueStep.AWAIT_NAME)

    def handle_step(self, step: DialogueStep, call_id: str, utterance: Optional[str]) -> StepResult:
        """Apply the caller's answer to a step and decide what happens next.

        Args:
            step: The step the utterance answers
            call_id: Twilio Call SID
            utterance: Transcribed speech, empty if Twilio captured nothing

        Returns:
            StepResult with the TwiML to return to Twilio
        """
        speech = normalize_utterance(utterance)

        try:
            record = self.store.get(call_id)
        except CallNotFoundError:
            logger.warning(f"handle_step[{step.value}]: no call state for call_id={call_id}, closing")
            return self._close(MISSING_STATE_CLOSING_TEXT)

        if record.is_terminal:
            # Duplicate delivery after finalization: repeat the goodbye, send nothing
            logger.info(f"handle_step[{step.value}]: call {call_id} already finalized, re-closing")
            return self._close(CLOSING_TEXT)

        logger.info(f"Call {call_id} step={step.value} speech_len={len(speech)}")
        return self._handlers[step](record, speech)

    def handle_name(self, call_id: str, utterance: Optional[str]) -> StepResult:
        return self.handle_step(DialogueStep.AWAIT_NAME, call_id, utterance)

    def handle_callback_number(self, call_id: str, utterance: Optional[str]) -> StepResult:
        return self.handle_step(DialogueStep.AWAIT_CALLBACK_NUMBER, call_id, utterance)

    def handle_category(self, call_id: str, utterance: Optional[str]) -> StepResult:
        return self.handle_step(DialogueStep.AWAIT_CATEGORY, call_id, utterance)

    def handle_topic(self, call_id: str, utterance: Optional[str]) -> StepResult:
        return self.handle_step(DialogueStep.AWAIT_TOPIC, call_id, utterance)

    def handle_urgency(self, call_id: str, utterance: Optional[str]) -> StepResult:
        return self.handle_step(DialogueStep.AWAIT_URGENCY, call_id, utterance)

    def handle_callback_time(self, call_id: str, utterance: Optional[str]) -> StepResult:
        return self.handle_step(DialogueStep.AWAIT_CALLBACK_TIME, call_id, utterance)

    # ------------------------------------------------------------------
    # Step handlers
    # ------------------------------------------------------------------

    def _on_name(self, record: CallRecord, speech: str) -> StepResult:
        record = self.store.update(record.call_id, _capture("caller_name", speech))

        if record.number_hidden and not record.callback_number:
            return self._ask(record.call_id, DialogueStep.AWAIT_CALLBACK_NUMBER)
        return self._ask(record.call_id, DialogueStep.AWAIT_CATEGORY)

    def _on_callback_number(self, record: CallRecord, speech: str) -> StepResult:
        self.store.update(record.call_id, _capture("callback_number", speech))
        return self._ask(record.call_id, DialogueStep.AWAIT_CATEGORY)

    def _on_category(self, record: CallRecord, speech: str) -> StepResult:
        category = classify_category(speech)

        def set_category(r: CallRecord) -> None:
            r.call_category = category

        record = self.store.update(record.call_id, set_category)
        logger.info(f"Call {record.call_id} category={category.value}")

        if category == CallCategory.PERSONAL:
            return self._finalize(record, ACTION_PERSONAL)
        return self._ask(record.call_id, DialogueStep.AWAIT_TOPIC)

    def _on_topic(self, record: CallRecord, speech: str) -> StepResult:
        self.store.update(record.call_id, _capture("topic", speech))
        return self._ask(record.call_id, DialogueStep.AWAIT_URGENCY)

    def _on_urgency(self, record: CallRecord, speech: str) -> StepResult:
        def set_urgency(r: CallRecord) -> None:
            if speech:
                r.urgency_raw_text = speech
            r.urgency_class = classify_urgency(r.urgency_raw_text)

        record = self.store.update(record.call_id, set_urgency)
        logger.info(f"Call {record.call_id} urgency={record.urgency_class.value}")

        if record.urgency_class == UrgencyClass.CAN_WAIT:
            return self._ask(record.call_id, DialogueStep.AWAIT_CALLBACK_TIME)
        return self._finalize(record, ACTION_WORK_IMMEDIATE)

    def _on_callback_time(self, record: CallRecord, speech: str) -> StepResult:
        record = self.store.update(record.call_id, _capture("callback_time_raw_text", speech))
        return self._finalize(record, ACTION_WORK_CAN_WAIT)

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def _ask(self, call_id: str, step: DialogueStep) -> StepResult:
        spec = get_step_spec(step)
        logger.debug(f"Call {call_id} -> {spec.path}")
        return StepResult(twiml=self.twiml.build_step_prompt(spec), next_step=step)

    def _close(self, text: str) -> StepResult:
        return StepResult(twiml=self.twiml.build_closing(text))

    def _finalize(self, record: CallRecord, action: str) -> StepResult:
        def set_action(r: CallRecord) -> None:
            r.final_action = action

        record = self.store.update(record.call_id, set_action)
        notification = build_call_notification(record)

        logger.info(f"=== CALL SUMMARY ===\n{notification.body}\n====================")

        result = self._close(CLOSING_TEXT)
        result.notification = notification
        return result
