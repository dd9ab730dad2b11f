"""
Registration keys and the ledger of pending alarms per reminder
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class AlarmPurpose(Enum):
    SERIES = "series"
    SNOOZE = "snooze"


@dataclass(frozen=True)
class RegistrationKey:
    """Deterministic identity of a pending alarm.

    ``bucket`` distinguishes snoozes of different lengths (milliseconds) and
    is always None for the series key.
    """
    reminder_id: int
    purpose: AlarmPurpose
    bucket: Optional[int] = None

    @classmethod
    def series(cls, reminder_id: int) -> "RegistrationKey":
        return cls(reminder_id, AlarmPurpose.SERIES)

    @classmethod
    def snooze(cls, reminder_id: int, duration_ms: int) -> "RegistrationKey":
        return cls(reminder_id, AlarmPurpose.SNOOZE, int(duration_ms))

    @property
    def token(self) -> str:
        parts = ["reminder", str(self.reminder_id), self.purpose.value]
        if self.bucket is not None:
            parts.append(str(self.bucket))
        return ":".join(parts)

    @classmethod
    def from_token(cls, token: str) -> "RegistrationKey":
        parts = token.split(":")
        if len(parts) not in (3, 4) or parts[0] != "reminder":
            raise ValueError(f"Malformed registration key: {token!r}")
        purpose = AlarmPurpose(parts[2])
        bucket = int(parts[3]) if len(parts) == 4 else None
        if (purpose is AlarmPurpose.SNOOZE) != (bucket is not None):
            raise ValueError(f"Malformed registration key: {token!r}")
        return cls(int(parts[1]), purpose, bucket)

    def __str__(self) -> str:
        return self.token

    # AlarmPurpose is not orderable; order keys by their token
    def __lt__(self, other: "RegistrationKey") -> bool:
        return self.token < other.token


@dataclass(frozen=True)
class PendingRegistration:
    key: RegistrationKey
    fire_at: datetime


class RegistrationLedger:
    """Pending registrations grouped by reminder id.

    Only updated after the backend call it mirrors has succeeded.
    """

    def __init__(self) -> None:
        self._by_reminder: Dict[int, Dict[RegistrationKey, datetime]] = {}

    def record(self, key: RegistrationKey, fire_at: datetime) -> None:
        self._by_reminder.setdefault(key.reminder_id, {})[key] = fire_at

    def discard(self, key: RegistrationKey) -> Optional[datetime]:
        entries = self._by_reminder.get(key.reminder_id)
        if not entries:
            return None
        fire_at = entries.pop(key, None)
        if not entries:
            del self._by_reminder[key.reminder_id]
        return fire_at

    def get(self, key: RegistrationKey) -> Optional[datetime]:
        return self._by_reminder.get(key.reminder_id, {}).get(key)

    def keys_for(self, reminder_id: int) -> List[RegistrationKey]:
        return sorted(self._by_reminder.get(reminder_id, {}))

    def pending(self, reminder_id: int) -> List[PendingRegistration]:
        entries = self._by_reminder.get(reminder_id, {})
        return [PendingRegistration(key, entries[key]) for key in sorted(entries)]

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._by_reminder.values())
