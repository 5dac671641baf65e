"""
Call dialogue engine - classifier, call state, state machine and summaries.
"""
from .classify import (
    CallCategory,
    UrgencyClass,
    classify_category,
    classify_urgency,
    detect_hidden_number,
    normalize_utterance,
)
from .store import (
    CALL_RECORDS,
    CallNotFoundError,
    CallRecord,
    CallStore,
    get_call_store,
)
from .summary import (
    Notification,
    build_call_notification,
    call_summary_subject,
    render_summary,
    sms_subject,
)
from .controller import (
    ACTION_PERSONAL,
    ACTION_WORK_CAN_WAIT,
    ACTION_WORK_IMMEDIATE,
    DialogueController,
    StepResult,
)

__all__ = [
    "CallCategory",
    "UrgencyClass",
    "classify_category",
    "classify_urgency",
    "detect_hidden_number",
    "normalize_utterance",
    "CALL_RECORDS",
    "CallNotFoundError",
    "CallRecord",
    "CallStore",
    "get_call_store",
    "Notification",
    "build_call_notification",
    "call_summary_subject",
    "render_summary",
    "sms_subject",
    "ACTION_PERSONAL",
    "ACTION_WORK_CAN_WAIT",
    "ACTION_WORK_IMMEDIATE",
    "DialogueController",
    "StepResult",
]
