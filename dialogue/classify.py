"""
Keyword classification of caller speech.

All matching here is plain case-insensitive substring containment over fixed
keyword lists, checked in list order. There is no stemming and no negation
handling: "not urgent" contains "urgent" and is classified IMMEDIATE.

NO network calls are made in this module. All logic is deterministic.
"""
from enum import Enum
from typing import Optional, Tuple


class CallCategory(str, Enum):
    """What the call is about."""
    UNSET = ""
    WORK = "Work"
    PERSONAL = "Personal"


class UrgencyClass(str, Enum):
    """How soon the caller needs a response."""
    UNSET = ""
    IMMEDIATE = "IMMEDIATE"
    CAN_WAIT = "CAN_WAIT"


# Placeholders the network substitutes for a suppressed caller ID
HIDDEN_NUMBER_MARKERS: Tuple[str, ...] = ("anonymous", "unknown", "private", "blocked")

PERSONAL_KEYWORDS: Tuple[str, ...] = ("personal", "private")
WORK_KEYWORDS: Tuple[str, ...] = ("work", "business", "job")

IMMEDIATE_KEYWORDS: Tuple[str, ...] = (
    "right now",
    "immediately",
    "urgent",
    "asap",
    "as soon as possible",
    "can't wait",
    "cannot wait",
    "emergency",
)


def normalize_utterance(text: Optional[str]) -> str:
    """Strip a transcribed utterance; None becomes ""."""
    return (text or "").strip()


def _contains_any(text: str, keywords: Tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def detect_hidden_number(caller_number: Optional[str]) -> bool:
    """
    Check whether the caller's number is missing or a network placeholder.

    Examples:
        ""             -> True
        "Anonymous"    -> True
        "+15551234567" -> False
    """
    number = (caller_number or "").strip().lower()
    if not number:
        return True
    return _contains_any(number, HIDDEN_NUMBER_MARKERS)


def classify_category(utterance: Optional[str]) -> CallCategory:
    """
    Classify a work/personal answer.

    Personal keywords are checked before work keywords. Anything that matches
    neither, including silence, is treated as WORK.
    """
    text = normalize_utterance(utterance).lower()
    if _contains_any(text, PERSONAL_KEYWORDS):
        return CallCategory.PERSONAL
    if _contains_any(text, WORK_KEYWORDS):
        return CallCategory.WORK
    return CallCategory.WORK


def classify_urgency(utterance: Optional[str]) -> UrgencyClass:
    """Classify an urgency answer. Silence is never urgent."""
    text = normalize_utterance(utterance).lower()
    if _contains_any(text, IMMEDIATE_KEYWORDS):
        return UrgencyClass.IMMEDIATE
    return UrgencyClass.CAN_WAIT
