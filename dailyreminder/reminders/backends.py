"""
Alarm registration backends
"""
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Tuple
import logging

from .config import settings
from .registrations import RegistrationKey
from dailyreminder.utils.timezone import to_utc_aware

logger = logging.getLogger(__name__)


class RegistrationResult(Enum):
    OK = "ok"
    DENIED = "denied"


class AlarmBackend(Protocol):
    """Host service that delivers an alarm at an exact instant.

    Registering an existing key replaces the pending alarm. Any exception
    other than a DENIED result is treated as a failed call that changed
    nothing.
    """

    def register(self, key: RegistrationKey, instant: datetime) -> RegistrationResult:
        ...

    def cancel(self, key: RegistrationKey) -> None:
        ...


class InMemoryAlarmBackend:
    """In-process backend for local runs and tests.

    Due alarms are delivered by calling ``fire_due``.
    """

    def __init__(self, exact_alarms_allowed: Optional[bool] = None):
        if exact_alarms_allowed is None:
            exact_alarms_allowed = settings.EXACT_ALARMS_ALLOWED
        self.exact_alarms_allowed = exact_alarms_allowed
        self._alarms: Dict[RegistrationKey, datetime] = {}

    def register(self, key: RegistrationKey, instant: datetime) -> RegistrationResult:
        if not self.exact_alarms_allowed:
            logger.warning(f"Exact alarm denied for {key}")
            return RegistrationResult.DENIED
        self._alarms[key] = to_utc_aware(instant)
        return RegistrationResult.OK

    def cancel(self, key: RegistrationKey) -> None:
        self._alarms.pop(key, None)

    def get(self, key: RegistrationKey) -> Optional[datetime]:
        return self._alarms.get(key)

    @property
    def alarms(self) -> Dict[RegistrationKey, datetime]:
        return dict(self._alarms)

    def due(self, now: datetime) -> List[Tuple[RegistrationKey, datetime]]:
        now_utc = to_utc_aware(now)
        return sorted(
            ((key, at) for key, at in self._alarms.items() if at <= now_utc),
            key=lambda item: (item[1], item[0].token),
        )

    def fire_due(self, now: datetime, callback: Callable[[RegistrationKey], object]) -> int:
        """Deliver every alarm due at ``now`` in instant order.

        Each alarm is removed before its callback runs so the callback may
        register the key again. Returns the number delivered.
        """
        delivered = 0
        for key, at in self.due(now):
            # an earlier callback may have replaced or cancelled this alarm
            if self._alarms.get(key) != at:
                continue
            del self._alarms[key]
            callback(key)
            delivered += 1
        return delivered

    def __len__(self) -> int:
        return len(self._alarms)
