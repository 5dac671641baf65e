"""
Call summary rendering and notification subjects.

render_summary is a pure function of the record: it reads every field with a
placeholder fallback, so any combination of captured and missing answers
renders without error, and rendering the same record twice gives the same
text.
"""
from dataclasses import dataclass

from .classify import CallCategory, UrgencyClass
from .store import CallRecord

NOT_PROVIDED = "(not provided)"
UNKNOWN = "(unknown)"
NO_ACTION = "(none)"


@dataclass(frozen=True)
class Notification:
    """An email to deliver in the background."""
    subject: str
    body: str


def _caller_number_line(record: CallRecord) -> str:
    if record.number_hidden:
        if record.callback_number:
            return f"Caller number: Provided by caller: {record.callback_number}"
        return "Caller number: Hidden (caller did not provide)"
    return f"Caller number: {record.caller_number or NOT_PROVIDED}"


def render_summary(record: CallRecord) -> str:
    """Render a call record as the multi-line text sent by email."""
    lines = [
        f"Caller name: {record.caller_name or NOT_PROVIDED}",
        _caller_number_line(record),
        f"Type: {record.call_category.value or UNKNOWN}",
    ]

    if record.call_category == CallCategory.WORK:
        lines.append(f"Topic: {record.topic or NOT_PROVIDED}")
        lines.append(f'Urgency (caller words): "{record.urgency_raw_text or NOT_PROVIDED}"')
        lines.append(f"Urgency class: {record.urgency_class.value or UNKNOWN}")
        if record.urgency_class == UrgencyClass.CAN_WAIT:
            lines.append(
                f'Callback time (caller words): "{record.callback_time_raw_text or NOT_PROVIDED}"'
            )

    lines.append(f"Action: {record.final_action or NO_ACTION}")
    return "\n".join(lines)


def call_summary_subject(record: CallRecord) -> str:
    """e.g. 'New Call Summary - Work - Alex'."""
    category = record.call_category.value or "Unknown"
    name_part = f" - {record.caller_name}" if record.caller_name else ""
    return f"New Call Summary - {category}{name_part}"


def sms_subject(sender: str) -> str:
    return f"New SMS to your Twilio number - from {sender}"


def build_call_notification(record: CallRecord) -> Notification:
    return Notification(subject=call_summary_subject(record), body=render_summary(record))
