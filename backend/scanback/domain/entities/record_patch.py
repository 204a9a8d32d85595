"""Field-level patch applied atomically by a record store."""

from dataclasses import dataclass, field
from typing import Any

from ..exceptions import PatchConflictError
from .tag_record import SCAN_HISTORY_LIMIT, ScanEvent, TagRecord, utcnow

IMMUTABLE_FIELDS = frozenset({"id", "code", "kind", "created_at"})


@dataclass
class RecordPatch:
    """A single update against one record.

    The store applies the whole patch in one step, so an increment plus a
    history append from one scan can never be split or lost.

    ``expect`` and ``forbid`` are preconditions checked against the stored
    record inside that same step: every ``expect`` field must equal its value,
    no ``forbid`` field may equal its value. A failed check raises
    ``PatchConflictError`` before anything is changed.
    """

    set_fields: dict[str, Any] = field(default_factory=dict)
    increments: dict[str, int] = field(default_factory=dict)
    scan_event: ScanEvent | None = None
    history_limit: int = SCAN_HISTORY_LIMIT
    expect: dict[str, Any] = field(default_factory=dict)
    forbid: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        touched = set(self.set_fields) | set(self.increments)
        forbidden = touched & IMMUTABLE_FIELDS
        if forbidden:
            raise ValueError(f"Cannot patch immutable fields: {sorted(forbidden)}")
        checked = touched | set(self.expect) | set(self.forbid)
        unknown = {name for name in checked if name not in TagRecord.__dataclass_fields__}
        if unknown:
            raise ValueError(f"Unknown record fields: {sorted(unknown)}")
        if self.history_limit < 1:
            raise ValueError("history_limit must be at least 1")

    def check(self, record: TagRecord) -> None:
        """Raise PatchConflictError if ``record`` fails a precondition."""
        for name, value in self.expect.items():
            actual = getattr(record, name)
            if actual != value:
                raise PatchConflictError(record.code, name, actual)
        for name, value in self.forbid.items():
            actual = getattr(record, name)
            if actual == value:
                raise PatchConflictError(record.code, name, actual)

    def apply_to(self, record: TagRecord) -> TagRecord:
        """Check the preconditions, then mutate ``record`` in place and return it."""
        self.check(record)
        for name, value in self.set_fields.items():
            setattr(record, name, value)
        for name, delta in self.increments.items():
            setattr(record, name, getattr(record, name) + delta)
        if self.scan_event is not None:
            history = [*record.scan_history, self.scan_event]
            # drop oldest first
            record.scan_history = history[-self.history_limit:]
        record.updated_at = utcnow()
        return record
