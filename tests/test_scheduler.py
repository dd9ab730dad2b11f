from datetime import timedelta

import pytest

from dailyreminder.reminders.errors import InvalidDuration, NotFound, RegistrationFailed, SchedulingDenied
from dailyreminder.reminders.recurrence_models import Weekday
from dailyreminder.reminders.registrations import AlarmPurpose, RegistrationKey
from dailyreminder.reminders.scheduler import SchedulingService
from dailyreminder.reminders.snooze import SnoozePreset

from conftest import RecordingBackend, at, make_reminder

MON, WED = Weekday.MONDAY, Weekday.WEDNESDAY


class ExplodingBackend(RecordingBackend):
    def __init__(self):
        super().__init__()
        self.fail = False

    def register(self, key, instant):
        if self.fail:
            raise OSError("alarm service unavailable")
        return super().register(key, instant)

    def cancel(self, key):
        if self.fail:
            raise OSError("alarm service unavailable")
        super().cancel(key)


def series(reminder_id):
    return RegistrationKey.series(reminder_id)


def test_schedule_registers_one_shot_at_stored_time(memory_scheduler, memory_store, backend):
    reminder = make_reminder(fire_at=at(2, 12))
    memory_store.reminders[1] = reminder

    assert memory_scheduler.schedule(reminder) == at(2, 12)
    assert backend.alarms == {series(1): at(2, 12)}
    assert [p.key for p in memory_scheduler.pending(1)] == [series(1)]


def test_schedule_then_cancel_leaves_nothing_pending(memory_scheduler, memory_store, backend):
    reminder = make_reminder()
    memory_store.reminders[1] = reminder

    memory_scheduler.schedule(reminder)
    memory_scheduler.cancel(1)

    assert memory_scheduler.pending(1) == []
    assert len(backend) == 0


def test_second_schedule_replaces_first(memory_scheduler, memory_store, backend):
    reminder = make_reminder(fire_at=at(2, 12))
    memory_store.reminders[1] = reminder

    memory_scheduler.schedule(reminder)
    memory_scheduler.schedule(reminder.with_fire_at(at(2, 18)))

    pending = memory_scheduler.pending(1)
    assert len(pending) == 1
    assert pending[0].fire_at == at(2, 18)
    assert backend.alarms == {series(1): at(2, 18)}


def test_cancel_is_idempotent(memory_scheduler, backend):
    memory_scheduler.cancel(99)
    memory_scheduler.cancel(99)
    assert len(backend) == 0


def test_schedule_recurring_moves_stored_fire_time(memory_scheduler, memory_store):
    # picked Tuesday 12:00, but it only recurs Mon/Wed
    reminder = make_reminder(fire_at=at(2, 12), days={MON, WED})
    memory_store.reminders[1] = reminder

    instant = memory_scheduler.schedule(reminder)

    assert instant == at(3, 12)
    assert memory_store.load(1).fire_at == at(3, 12)


def test_schedule_cancels_stale_snoozes(memory_scheduler, memory_store, backend):
    reminder = make_reminder()
    memory_store.reminders[1] = reminder
    memory_scheduler.schedule(reminder)
    memory_scheduler.on_snooze_requested(1, SnoozePreset.FIVE)

    memory_scheduler.schedule(reminder)

    assert [p.key for p in memory_scheduler.pending(1)] == [series(1)]
    assert list(backend.alarms) == [series(1)]


def test_on_fired_one_shot_registers_nothing(memory_scheduler, memory_store, backend, clock):
    reminder = make_reminder(fire_at=at(2, 12))
    memory_store.reminders[1] = reminder
    memory_scheduler.schedule(reminder)
    backend.cancel(series(1))  # delivered by the host
    registrations_before = len(backend.register_calls)
    clock.now = at(2, 12)

    assert memory_scheduler.on_fired(1) is None

    assert len(backend.register_calls) == registrations_before
    assert memory_scheduler.pending(1) == []


def test_on_fired_recurring_registers_next_occurrence(memory_scheduler, memory_store, backend, clock):
    reminder = make_reminder(fire_at=at(1, 9), days={MON, WED})
    memory_store.reminders[1] = reminder
    clock.now = at(1, 8)
    assert memory_scheduler.schedule(reminder) == at(1, 9)
    backend.cancel(series(1))
    registrations_before = len(backend.register_calls)

    # delivered exactly on time
    clock.now = at(1, 9)
    next_at = memory_scheduler.on_fired(1)

    assert next_at == at(3, 9)
    assert next_at > at(1, 9)
    assert len(backend.register_calls) == registrations_before + 1
    assert backend.alarms == {series(1): at(3, 9)}
    assert memory_store.load(1).fire_at == at(3, 9)


def test_on_fired_late_delivery_still_moves_forward(memory_scheduler, memory_store, clock):
    reminder = make_reminder(fire_at=at(1, 9), days={MON})
    memory_store.reminders[1] = reminder
    clock.now = at(1, 8)
    memory_scheduler.schedule(reminder)

    # delivered a day late
    clock.now = at(2, 9)
    assert memory_scheduler.on_fired(1) == at(8, 9)


def test_on_fired_completed_recurring_is_not_rearmed(memory_scheduler, memory_store, backend):
    memory_store.reminders[1] = make_reminder(days={MON}, completed=True)

    assert memory_scheduler.on_fired(1) is None
    assert len(backend) == 0


def test_on_fired_unknown_reminder_raises_not_found(memory_scheduler):
    with pytest.raises(NotFound):
        memory_scheduler.on_fired(404)


def test_on_fired_rejects_key_of_other_reminder(memory_scheduler):
    with pytest.raises(ValueError):
        memory_scheduler.on_fired(1, series(2))


def test_snooze_registers_separately_from_series(memory_scheduler, memory_store, backend, clock):
    reminder = make_reminder(fire_at=at(1, 9), days={MON})
    memory_store.reminders[1] = reminder
    memory_scheduler.schedule(reminder)
    series_before = backend.get(series(1))

    snoozed = memory_scheduler.on_snooze_requested(1, timedelta(minutes=5))

    assert snoozed.fire_at == clock.now + timedelta(minutes=5)
    assert snoozed.key.purpose is AlarmPurpose.SNOOZE
    assert backend.get(snoozed.key) == clock.now + timedelta(minutes=5)
    assert backend.get(series(1)) == series_before
    assert memory_store.load(1).fire_at == series_before


def test_different_snooze_lengths_do_not_collide(memory_scheduler, memory_store, backend, clock):
    memory_store.reminders[1] = make_reminder()

    five = memory_scheduler.on_snooze_requested(1, SnoozePreset.FIVE)
    fifteen = memory_scheduler.on_snooze_requested(1, SnoozePreset.FIFTEEN)
    clock.advance(minutes=1)
    five_again = memory_scheduler.on_snooze_requested(1, SnoozePreset.FIVE)

    assert five.key == five_again.key != fifteen.key
    assert backend.alarms == {
        five.key: five_again.fire_at,
        fifteen.key: fifteen.fire_at,
    }


def test_snooze_rejects_bad_duration_before_anything_else(memory_scheduler, backend):
    # unknown reminder too, but the duration is checked first
    with pytest.raises(InvalidDuration):
        memory_scheduler.on_snooze_requested(404, timedelta(0))
    assert backend.register_calls == []


def test_snooze_unknown_reminder_raises_not_found(memory_scheduler, backend):
    with pytest.raises(NotFound):
        memory_scheduler.on_snooze_requested(404, SnoozePreset.TEN)
    assert backend.register_calls == []


def test_fired_snooze_is_dropped_and_not_rearmed(memory_scheduler, memory_store, backend):
    reminder = make_reminder(days={MON})
    memory_store.reminders[1] = reminder
    memory_scheduler.schedule(reminder)
    snoozed = memory_scheduler.on_snooze_requested(1, SnoozePreset.TEN)
    backend.cancel(snoozed.key)

    assert memory_scheduler.on_fired(1, snoozed.key) is None
    assert [p.key for p in memory_scheduler.pending(1)] == [series(1)]


def test_denied_schedule_surfaces_and_keeps_previous_state(memory_store, clock):
    backend = RecordingBackend()
    scheduler = SchedulingService(backend, memory_store, clock=clock)
    reminder = make_reminder(fire_at=at(2, 12))
    memory_store.reminders[1] = reminder
    scheduler.schedule(reminder)

    backend.exact_alarms_allowed = False
    with pytest.raises(SchedulingDenied) as exc:
        scheduler.schedule(reminder.with_fire_at(at(2, 18)))

    assert exc.value.key == series(1)
    assert backend.alarms == {series(1): at(2, 12)}
    assert [p.fire_at for p in scheduler.pending(1)] == [at(2, 12)]

    # caller obtains permission and retries
    backend.exact_alarms_allowed = True
    assert scheduler.schedule(reminder.with_fire_at(at(2, 18))) == at(2, 18)


def test_denied_first_schedule_leaves_nothing_pending(memory_store, clock):
    scheduler = SchedulingService(RecordingBackend(exact_alarms_allowed=False), memory_store, clock=clock)
    memory_store.reminders[1] = make_reminder()

    with pytest.raises(SchedulingDenied):
        scheduler.schedule(memory_store.load(1))
    assert scheduler.pending(1) == []


def test_backend_failure_is_wrapped_and_changes_nothing(memory_store, clock):
    backend = ExplodingBackend()
    scheduler = SchedulingService(backend, memory_store, clock=clock)
    reminder = make_reminder(fire_at=at(2, 12))
    memory_store.reminders[1] = reminder
    scheduler.schedule(reminder)

    backend.fail = True
    with pytest.raises(RegistrationFailed):
        scheduler.schedule(reminder.with_fire_at(at(2, 18)))
    with pytest.raises(RegistrationFailed):
        scheduler.cancel(1)

    assert [p.fire_at for p in scheduler.pending(1)] == [at(2, 12)]
    assert backend.alarms == {series(1): at(2, 12)}


class SnoozeCancelFailingBackend(RecordingBackend):
    def cancel(self, key):
        if key.purpose is AlarmPurpose.SNOOZE:
            raise OSError("alarm service unavailable")
        super().cancel(key)


def test_schedule_unknown_reminder_registers_nothing(memory_scheduler, backend):
    with pytest.raises(NotFound):
        memory_scheduler.schedule(make_reminder(7, fire_at=at(1, 9), days={MON}))

    assert backend.register_calls == []
    assert len(backend) == 0
    assert memory_scheduler.pending(7) == []


def test_failed_snooze_cleanup_restores_previous_series(memory_store, clock):
    backend = SnoozeCancelFailingBackend()
    scheduler = SchedulingService(backend, memory_store, clock=clock)
    reminder = make_reminder(fire_at=at(2, 12))
    memory_store.reminders[1] = reminder
    scheduler.schedule(reminder)
    snoozed = scheduler.on_snooze_requested(1, SnoozePreset.FIVE)

    with pytest.raises(RegistrationFailed):
        scheduler.schedule(reminder.with_fire_at(at(3, 12)))

    assert backend.alarms == {series(1): at(2, 12), snoozed.key: snoozed.fire_at}
    assert [(p.key, p.fire_at) for p in scheduler.pending(1)] == [
        (series(1), at(2, 12)),
        (snoozed.key, snoozed.fire_at),
    ]
    assert memory_store.load(1).fire_at == at(2, 12)


def test_failed_snooze_cleanup_on_first_schedule_drops_new_series(memory_store, clock):
    backend = SnoozeCancelFailingBackend()
    scheduler = SchedulingService(backend, memory_store, clock=clock)
    memory_store.reminders[1] = make_reminder(fire_at=at(2, 12))
    snoozed = scheduler.on_snooze_requested(1, SnoozePreset.TEN)

    with pytest.raises(RegistrationFailed):
        scheduler.schedule(memory_store.load(1))

    assert backend.alarms == {snoozed.key: snoozed.fire_at}
    assert [p.key for p in scheduler.pending(1)] == [snoozed.key]
