"""
In-memory call state.

One CallRecord per Twilio CallSid, kept for the lifetime of the process.
Records are independent of each other: no operation reads or writes more
than one record, so calls in flight at the same time never contend.

Python 3.9 compatible - uses typing.Dict, typing.Optional
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional

from .classify import CallCategory, UrgencyClass, detect_hidden_number

logger = logging.getLogger(__name__)


class CallNotFoundError(KeyError):
    """No record exists for the requested call id."""

    def __init__(self, call_id: str):
        super().__init__(call_id)
        self.call_id = call_id

    def __str__(self) -> str:
        return f"No call state for call_id={self.call_id}"


@dataclass
class CallRecord:
    """State accumulated over a single inbound call."""
    call_id: str  # Twilio Call SID
    caller_number: str = ""
    number_hidden: bool = False

    # Captured from the caller
    caller_name: str = ""
    callback_number: str = ""
    call_category: CallCategory = CallCategory.UNSET
    topic: str = ""
    urgency_raw_text: str = ""
    urgency_class: UrgencyClass = UrgencyClass.UNSET
    callback_time_raw_text: str = ""

    # Set once, at finalization
    final_action: str = ""

    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        return bool(self.final_action)


# In-memory storage for call records
CALL_RECORDS: Dict[str, CallRecord] = {}


class CallStore:
    """Key-value store of CallRecords keyed by call id."""

    def __init__(self, records: Optional[Dict[str, CallRecord]] = None):
        self._records = CALL_RECORDS if records is None else records

    def create(self, call_id: str, caller_number: Optional[str]) -> CallRecord:
        """Create and insert a fresh record for a call.

        A second incoming-call event for the same call id overwrites the
        existing record, which restarts the dialogue from the name step.

        Args:
            call_id: Twilio Call SID
            caller_number: The From number as delivered by Twilio, may be empty

        Returns:
            The new CallRecord
        """
        number = (caller_number or "").strip()
        if call_id in self._records:
            logger.warning(f"create: overwriting existing call state for call_id={call_id}")

        record = CallRecord(
            call_id=call_id,
            caller_number=number,
            number_hidden=detect_hidden_number(number),
        )
        self._records[call_id] = record
        logger.info(f"Call {call_id} created: hidden_number={record.number_hidden}")
        return record

    def get(self, call_id: str) -> CallRecord:
        """Get a record by call id.

        Raises:
            CallNotFoundError: If no record exists
        """
        record = self._records.get(call_id)
        if record is None:
            raise CallNotFoundError(call_id)
        return record

    def update(self, call_id: str, mutator: Callable[[CallRecord], None]) -> CallRecord:
        """Apply an in-place mutation to a record and store it back.

        Raises:
            CallNotFoundError: If no record exists
        """
        record = self.get(call_id)
        mutator(record)
        self._records[call_id] = record
        return record

    def clear(self) -> None:
        self._records.clear()

    def __contains__(self, call_id: object) -> bool:
        return call_id in self._records

    def __len__(self) -> int:
        return len(self._records)


# Singleton instance (created lazily)
_call_store: Optional[CallStore] = None


def get_call_store() -> CallStore:
    """Get or create the CallStore singleton."""
    global _call_store
    if _call_store is None:
        _call_store = CallStore()
    return _call_store
