"""Cross-context change signal published whenever a persisted key is written."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class ChangeEvent:
    """A write observed on the shared key/value backend.

    ``value`` is the raw serialized payload, or None when the key was removed.
    ``origin`` identifies the execution context that performed the write.
    """

    key: str
    value: str | None
    origin: str
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_removal(self) -> bool:
        return self.value is None
