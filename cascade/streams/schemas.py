"""
Stream read models.

StreamSnapshot is the in-memory view of one payroll stream at a point in
time, as mirrored from the on-chain program. Nothing in the core mutates a
snapshot; deposits, withdrawals and status changes happen on-chain and show
up in the next snapshot.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from .numeric import ZERO, to_amount, to_datetime


class StreamStatus(str, Enum):
    """Lifecycle states of a payroll stream."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CLOSED = "closed"
    DRAFT = "draft"

    @classmethod
    def coerce(cls, value: Any) -> "StreamStatus":
        """Map an arbitrary stored status to a known state, defaulting to draft."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return cls.DRAFT


@dataclass(frozen=True)
class StreamSnapshot:
    """One payroll stream at a point in time."""
    id: str
    hourly_rate: Decimal
    total_deposited: Decimal
    withdrawn_amount: Decimal
    created_at: Optional[datetime]
    last_activity_at: Optional[datetime]
    status: StreamStatus
    # Supplied by the source from the vault mirror, never derived by the core
    vault_balance: Decimal = ZERO

    organization_id: Optional[str] = None
    employee_id: Optional[str] = None
    employee_name: Optional[str] = None
    stream_address: Optional[str] = None
    vault_address: Optional[str] = None
    mint_address: Optional[str] = None
    deactivated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == StreamStatus.ACTIVE

    @property
    def display_name(self) -> str:
        return self.employee_name or "Unknown Employee"

    @classmethod
    def from_raw(cls, **raw: Any) -> "StreamSnapshot":
        """
        Build a snapshot from loosely typed source values.

        Numbers and timestamps are coerced (bad values become 0 / None),
        negative amounts are clamped to 0 and unknown statuses fall back to
        draft.
        """
        return cls(
            id=str(raw["id"]),
            hourly_rate=to_amount(raw.get("hourly_rate")),
            total_deposited=to_amount(raw.get("total_deposited")),
            withdrawn_amount=to_amount(raw.get("withdrawn_amount")),
            created_at=to_datetime(raw.get("created_at")),
            last_activity_at=to_datetime(raw.get("last_activity_at")),
            status=StreamStatus.coerce(raw.get("status")),
            vault_balance=to_amount(raw.get("vault_balance")),
            organization_id=raw.get("organization_id"),
            employee_id=raw.get("employee_id"),
            employee_name=raw.get("employee_name"),
            stream_address=raw.get("stream_address"),
            vault_address=raw.get("vault_address"),
            mint_address=raw.get("mint_address"),
            deactivated_at=to_datetime(raw.get("deactivated_at")),
            closed_at=to_datetime(raw.get("closed_at")),
        )


@dataclass(frozen=True)
class AccrualResult:
    """Vested amount of a stream and the part still withdrawable."""
    earned: Decimal
    available: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "earned": str(self.earned),
            "available": str(self.available),
        }


@dataclass(frozen=True)
class StreamEventRecord:
    """A single entry from the stream event log."""
    id: str
    stream_id: Optional[str]
    event_type: str
    occurred_at: Optional[datetime]
    amount: Decimal = ZERO
    signature: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
