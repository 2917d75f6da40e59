"""Ledger data models — events, dry-run results, Move calls.

Data classes mirroring the Sui JSON-RPC response objects the gateway
consumes. Only the fields the payment engine reads are modelled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Application event types (matched by substring on the fully qualified type)
# ---------------------------------------------------------------------------

PAYMENT_RECEIPT_EVENT = "::payment::PaymentReceiptEvent"
INTENT_CREATION_EVENT = "::payment::PaymentIntentCreationEvent"
INTENT_DELETE_EVENT = "::payment::PaymentIntentDeleteEvent"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerEvent:
    """A single event emitted by an executed Move program.

    Attributes:
        type: Fully qualified event type, e.g. ``0x2a::payment::PaymentReceiptEvent``.
        parsed_json: Decoded event payload, if the node returned one.
        sender: Address that signed the transaction.
        tx_digest: Digest of the emitting transaction.
        timestamp_ms: Checkpoint timestamp in milliseconds.
    """

    type: str
    parsed_json: dict[str, Any] | None = None
    sender: str = ""
    package_id: str = ""
    tx_digest: str = ""
    timestamp_ms: int | None = None

    def matches(self, event_type: str) -> bool:
        """Whether this event is *event_type* and carries a payload."""
        return event_type in self.type and bool(self.parsed_json)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LedgerEvent:
        """Create a LedgerEvent from a Sui JSON-RPC event object."""
        event_id = data.get("id") or {}
        timestamp = data.get("timestampMs")
        return cls(
            type=data.get("type", ""),
            parsed_json=data.get("parsedJson"),
            sender=data.get("sender", ""),
            package_id=data.get("packageId", ""),
            tx_digest=event_id.get("txDigest", ""),
            timestamp_ms=int(timestamp) if timestamp is not None else None,
        )


def find_event(events: list[LedgerEvent], event_type: str) -> LedgerEvent | None:
    """Return the first event of *event_type* with a parsed payload."""
    return next((ev for ev in events if ev.matches(event_type)), None)


@dataclass
class EventPage:
    """Result of ``suix_queryEvents``."""

    data: list[LedgerEvent] = field(default_factory=list)
    next_cursor: dict[str, Any] | None = None
    has_next_page: bool = False

    def find(self, event_type: str) -> LedgerEvent | None:
        return find_event(self.data, event_type)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventPage:
        return cls(
            data=[LedgerEvent.from_dict(ev) for ev in data.get("data", [])],
            next_cursor=data.get("nextCursor"),
            has_next_page=bool(data.get("hasNextPage", False)),
        )


# ---------------------------------------------------------------------------
# Execution / dry run
# ---------------------------------------------------------------------------


@dataclass
class GasEstimate:
    """Gas summary from transaction effects (all values in MIST)."""

    computation_cost: int = 0
    storage_cost: int = 0
    storage_rebate: int = 0
    non_refundable_storage_fee: int = 0

    @property
    def total(self) -> int:
        """Net gas charged: computation + storage - rebate."""
        return self.computation_cost + self.storage_cost - self.storage_rebate

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GasEstimate:
        return cls(
            computation_cost=int(data.get("computationCost", 0)),
            storage_cost=int(data.get("storageCost", 0)),
            storage_rebate=int(data.get("storageRebate", 0)),
            non_refundable_storage_fee=int(data.get("nonRefundableStorageFee", 0)),
        )


def _effects_status(effects: dict[str, Any]) -> tuple[str, str]:
    status = effects.get("status") or {}
    return status.get("status", ""), status.get("error", "")


@dataclass
class DryRunResult:
    """Result of ``sui_dryRunTransactionBlock``."""

    status: str = ""
    error: str = ""
    gas: GasEstimate = field(default_factory=GasEstimate)
    events: list[LedgerEvent] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == "success"

    def find_event(self, event_type: str) -> LedgerEvent | None:
        return find_event(self.events, event_type)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DryRunResult:
        effects = data.get("effects") or {}
        status, error = _effects_status(effects)
        return cls(
            status=status,
            error=error,
            gas=GasEstimate.from_dict(effects.get("gasUsed") or {}),
            events=[LedgerEvent.from_dict(ev) for ev in data.get("events") or []],
        )


@dataclass
class ExecutionResult:
    """Result of ``sui_executeTransactionBlock``."""

    digest: str = ""
    status: str = ""
    error: str = ""

    @property
    def succeeded(self) -> bool:
        # Nodes omit effects when they were not requested; treat that as success.
        return self.status in ("", "success")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionResult:
        status, error = _effects_status(data.get("effects") or {})
        return cls(digest=data.get("digest", ""), status=status, error=error)


# ---------------------------------------------------------------------------
# Move calls
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MoveCall:
    """A call to ``package::module::function`` with object-id arguments."""

    package_id: str
    module: str
    function: str
    arguments: tuple[str, ...] = ()
    type_arguments: tuple[str, ...] = ()

    @property
    def target(self) -> str:
        return f"{self.package_id}::{self.module}::{self.function}"

    @classmethod
    def from_target(cls, target: str, arguments: list[str] | tuple[str, ...]) -> MoveCall:
        """Build a MoveCall from a ``package::module::function`` string."""
        package_id, module, function = target.split("::")
        return cls(package_id=package_id, module=module, function=function, arguments=tuple(arguments))
