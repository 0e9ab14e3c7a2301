"""
Loan Audit Log

Append-only history of every change LoanManager makes to a loan. Each
entry carries the SHA-256 digest of the entry before it, so editing or
removing a stored entry breaks the chain and shows up in `verify()`.
"""

import hashlib
import json
import threading
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from .clock import Clock, SystemClock
from .storage import StorageInterface, StorageRecord


class AuditEventType(Enum):
    """Loan changes recorded in the audit log"""
    LOAN_CREATED = "loan_created"
    LOAN_TERMS_UPDATED = "loan_terms_updated"
    LOAN_DETAILS_UPDATED = "loan_details_updated"
    LOAN_PAYMENT_RECORDED = "loan_payment_recorded"
    LOAN_COMPLETED = "loan_completed"
    LOAN_DELETED = "loan_deleted"


def _plain(value: Any) -> Any:
    """Reduce Decimals, dates and enums to JSON values"""
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass
class AuditEvent(StorageRecord):
    """One link in the audit chain"""
    sequence: int
    event_type: AuditEventType
    loan_id: str
    previous_hash: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    current_hash: str = ""

    def __post_init__(self):
        self.metadata = _plain(self.metadata)

    def digest(self) -> str:
        """SHA-256 over everything except current_hash"""
        body = json.dumps({
            'id': self.id,
            'sequence': self.sequence,
            'recorded_at': self.created_at.isoformat(),
            'event_type': self.event_type.value,
            'loan_id': self.loan_id,
            'previous_hash': self.previous_hash,
            'metadata': self.metadata,
        }, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(body.encode('utf-8')).hexdigest()

    @property
    def is_intact(self) -> bool:
        return self.current_hash == self.digest()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'sequence': self.sequence,
            'event_type': self.event_type.value,
            'loan_id': self.loan_id,
            'previous_hash': self.previous_hash,
            'metadata': self.metadata,
            'current_hash': self.current_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEvent':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            sequence=int(data['sequence']),
            event_type=AuditEventType(data['event_type']),
            loan_id=data['loan_id'],
            previous_hash=data['previous_hash'],
            metadata=data.get('metadata') or {},
            current_hash=data.get('current_hash', ""),
        )


@dataclass
class IntegrityReport:
    """Outcome of walking the audit chain"""
    total_events: int = 0
    # Ids of events whose stored digest no longer matches their content
    tampered: List[str] = field(default_factory=list)
    # Ids of events whose previous_hash does not match the event before them
    broken_links: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not (self.tampered or self.broken_links)


class AuditTrail:
    """
    Hash-chained audit log stored alongside the loans

    Events are ordered by their sequence number, so several events written
    within one clock tick (or under a FixedClock) keep their order.
    """

    def __init__(self, storage: StorageInterface, clock: Optional[Clock] = None,
                 table_name: str = "audit_events"):
        self.storage = storage
        self.clock = clock or SystemClock()
        self.table_name = table_name
        self._lock = threading.Lock()

    def _events(self) -> List[AuditEvent]:
        events = [AuditEvent.from_dict(data) for data in self.storage.load_all(self.table_name)]
        events.sort(key=lambda event: event.sequence)
        return events

    def log_event(
        self,
        event_type: AuditEventType,
        loan_id: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> AuditEvent:
        """
        Append an event to the chain

        Args:
            event_type: What happened
            loan_id: Loan the event belongs to
            metadata: Event-specific values (Decimals, dates and enums are
                converted to JSON values)

        Returns:
            The stored AuditEvent
        """
        with self._lock:
            events = self._events()
            last = events[-1] if events else None
            now = self.clock.now()

            event = AuditEvent(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                sequence=last.sequence + 1 if last else 1,
                event_type=event_type,
                loan_id=loan_id,
                previous_hash=last.current_hash if last else "",
                metadata=metadata or {},
            )
            event.current_hash = event.digest()
            self.storage.save(self.table_name, event.id, event.to_dict())
            return event

    def history(self, loan_id: str, limit: Optional[int] = None) -> List[AuditEvent]:
        """Events for one loan, oldest first; `limit` keeps the most recent"""
        events = [event for event in self._events() if event.loan_id == loan_id]
        if limit:
            events = events[-limit:]
        return events

    def events_of_type(self, event_type: AuditEventType) -> List[AuditEvent]:
        return [event for event in self._events() if event.event_type == event_type]

    def verify(self) -> IntegrityReport:
        """Re-hash every event and check each link to its predecessor"""
        events = self._events()
        report = IntegrityReport(total_events=len(events))

        expected_previous = ""
        for event in events:
            if not event.is_intact:
                report.tampered.append(event.id)
            if event.previous_hash != expected_previous:
                report.broken_links.append(event.id)
            expected_previous = event.current_hash

        return report

    def count(self) -> int:
        return self.storage.count(self.table_name)
