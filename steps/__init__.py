"""
Dialogue step specifications and registry.
"""
from .specs import (
    DialogueStep,
    StepSpec,
    STEPS,
    INCOMING_CALL_PATH,
    SMS_PATH,
    CLOSING_TEXT,
    MISSING_STATE_CLOSING_TEXT,
    get_step_spec,
    step_path,
    list_step_paths,
)

__all__ = [
    "DialogueStep",
    "StepSpec",
    "STEPS",
    "INCOMING_CALL_PATH",
    "SMS_PATH",
    "CLOSING_TEXT",
    "MISSING_STATE_CLOSING_TEXT",
    "get_step_spec",
    "step_path",
    "list_step_paths",
]
