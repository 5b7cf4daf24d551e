"""
Tests for BookingConflictResolver over the in-memory repository: commit, races, optimistic locking, cancel.
"""
import itertools
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from booking_app.core.constants import STATUS_CANCELLED, STATUS_CONFIRMED
from booking_app.core.errors import (
    BookingError,
    ConcurrentModification,
    ConstraintViolation,
    InvalidAction,
    SlotAlreadyBooked,
    ViolationKind,
)
from booking_app.repository.memory import InMemoryBookingRepository
from booking_app.scheduling.overlap import intervals_overlap
from booking_app.scheduling.resolver import BookingConflictResolver
from tests.helpers import CLOCK, ORGANIZER_ID, make_policy, monday_at


class BarrierRepository(InMemoryBookingRepository):
    """Holds every insert at a barrier so all racers have validated before any commits."""

    def __init__(self, parties: int):
        super().__init__()
        self.barrier = threading.Barrier(parties, timeout=5)

    def insert_if_absent(self, booking):
        self.barrier.wait()
        return super().insert_if_absent(booking)


def confirmed(repository, organizer_id=ORGANIZER_ID):
    bookings, _ = repository.find_by_organizer(organizer_id, status=STATUS_CONFIRMED)
    return bookings


class TestCreate(unittest.TestCase):
    def setUp(self):
        self.repository = InMemoryBookingRepository()
        self.policy = self.repository.save_policy(make_policy())
        self.resolver = BookingConflictResolver(self.repository, clock=CLOCK)

    def test_commit_stores_confirmed_version_one(self):
        booking = self.resolver.create(self.policy, monday_at(10), "Ada", "ada@example.com", "Europe/London")
        self.assertEqual(booking.status, STATUS_CONFIRMED)
        self.assertEqual(booking.version, 1)
        self.assertEqual(booking.end_time, monday_at(10, 30))
        self.assertEqual(booking.invitee_timezone, "Europe/London")
        self.assertEqual(self.repository.get_booking(booking.id), booking)

    def test_prevalidation_reports_conflict(self):
        self.resolver.create(self.policy, monday_at(10), "Ada", "ada@example.com")
        with self.assertRaises(ConstraintViolation) as ctx:
            self.resolver.create(self.policy, monday_at(10, 15), "Bob", "bob@example.com")
        self.assertEqual(ctx.exception.kind, ViolationKind.SLOT_CONFLICT)

    def test_two_validated_candidates_one_commit(self):
        # Both pass validation before either commits
        first = self.resolver.prepare(self.policy, monday_at(10), "Ada", "ada@example.com")
        second = self.resolver.prepare(self.policy, monday_at(10), "Bob", "bob@example.com")
        self.resolver.commit(first)
        with self.assertRaises(SlotAlreadyBooked):
            self.resolver.commit(second)
        self.assertEqual([b.id for b in confirmed(self.repository)], [first.id])

    def test_overlapping_validated_candidates_one_commit(self):
        first = self.resolver.prepare(self.policy, monday_at(10), "Ada", "ada@example.com")
        second = self.resolver.prepare(self.policy, monday_at(10, 15), "Bob", "bob@example.com")
        self.resolver.commit(second)
        with self.assertRaises(SlotAlreadyBooked):
            self.resolver.commit(first)
        self.assertEqual(len(confirmed(self.repository)), 1)

    def test_threaded_race_for_same_start(self):
        racers = 4
        repository = BarrierRepository(racers)
        policy = repository.save_policy(make_policy())
        resolver = BookingConflictResolver(repository, clock=CLOCK)

        def attempt(i):
            try:
                return resolver.create(policy, monday_at(11), f"Invitee {i}", f"i{i}@example.com")
            except SlotAlreadyBooked as e:
                return e

        with ThreadPoolExecutor(max_workers=racers) as pool:
            results = list(pool.map(attempt, range(racers)))

        winners = [r for r in results if not isinstance(r, BookingError)]
        self.assertEqual(len(winners), 1)
        self.assertEqual(sum(isinstance(r, SlotAlreadyBooked) for r in results), racers - 1)
        self.assertEqual([b.id for b in confirmed(repository)], [winners[0].id])

    def test_enforce_buffers_on_create(self):
        policy = self.repository.save_policy(make_policy(buffer_before=5, buffer_after=10))
        self.resolver.create(policy, monday_at(14), "Ada", "ada@example.com")
        # Default: buffers only shape the generated slots
        relaxed = self.resolver.create(policy, monday_at(14, 30), "Bob", "bob@example.com")
        self.assertEqual(relaxed.start_time, monday_at(14, 30))

        strict = BookingConflictResolver(self.repository, clock=CLOCK, enforce_buffers=True)
        with self.assertRaises(ConstraintViolation) as ctx:
            strict.create(policy, monday_at(13, 30), "Cy", "cy@example.com")
        self.assertEqual(ctx.exception.kind, ViolationKind.SLOT_CONFLICT)


class TestRescheduleAndCancel(unittest.TestCase):
    def setUp(self):
        self.repository = InMemoryBookingRepository()
        self.policy = self.repository.save_policy(make_policy())
        self.resolver = BookingConflictResolver(self.repository, clock=CLOCK)
        self.booking = self.resolver.create(self.policy, monday_at(10), "Ada", "ada@example.com")

    def test_reschedule_bumps_version(self):
        moved = self.resolver.reschedule(self.policy, self.booking, monday_at(15))
        self.assertEqual(moved.version, 2)
        self.assertEqual(moved.start_time, monday_at(15))
        self.assertEqual(moved.end_time, monday_at(15, 30))
        self.assertEqual(moved.id, self.booking.id)

    def test_reschedule_uses_current_duration(self):
        longer = self.repository.save_policy(make_policy(meeting_duration=60))
        moved = self.resolver.reschedule(longer, self.booking, monday_at(15))
        self.assertEqual(moved.end_time, monday_at(16))

    def test_reschedule_overlapping_own_range(self):
        moved = self.resolver.reschedule(self.policy, self.booking, monday_at(10, 15))
        self.assertEqual(moved.start_time, monday_at(10, 15))

    def test_stale_reschedule_is_rejected(self):
        seen = self.booking
        current = self.resolver.reschedule(self.policy, seen, monday_at(15))
        with self.assertRaises(ConcurrentModification):
            self.resolver.reschedule(self.policy, seen, monday_at(16))
        stored = self.repository.get_booking(seen.id)
        self.assertEqual(stored, current)
        self.assertEqual(stored.version, 2)
        self.assertEqual(stored.start_time, monday_at(15))

    def test_explicit_expected_version(self):
        with self.assertRaises(ConcurrentModification):
            self.resolver.reschedule(self.policy, self.booking, monday_at(15), expected_version=7)
        self.assertEqual(self.repository.get_booking(self.booking.id).version, 1)

    def test_reschedule_into_taken_slot(self):
        other = self.resolver.create(self.policy, monday_at(12), "Bob", "bob@example.com")
        with self.assertRaises(ConstraintViolation):
            self.resolver.reschedule(self.policy, self.booking, other.start_time)

    def test_enforce_buffers_on_reschedule(self):
        policy = self.repository.save_policy(make_policy(buffer_after=10))
        self.resolver.create(policy, monday_at(12), "Bob", "bob@example.com")
        strict = BookingConflictResolver(self.repository, clock=CLOCK, enforce_buffers=True)
        with self.assertRaises(ConstraintViolation):
            strict.reschedule(policy, self.booking, monday_at(12, 30))
        moved = self.resolver.reschedule(policy, self.booking, monday_at(12, 30))
        self.assertEqual(moved.version, 2)

    def test_cancel_is_idempotent(self):
        first = self.resolver.cancel(self.booking.id)
        second = self.resolver.cancel(self.booking.id)
        self.assertEqual(first.status, STATUS_CANCELLED)
        self.assertEqual(first.version, 2)
        self.assertEqual(second, first)

    def test_cancel_frees_the_slot(self):
        self.resolver.cancel(self.booking.id)
        again = self.resolver.create(self.policy, monday_at(10), "Bob", "bob@example.com")
        self.assertEqual(again.start_time, monday_at(10))
        _, total = self.repository.find_by_organizer(ORGANIZER_ID)
        self.assertEqual(total, 2)

    def test_cancelled_booking_cannot_be_rescheduled(self):
        cancelled = self.resolver.cancel(self.booking.id)
        with self.assertRaises(InvalidAction):
            self.resolver.reschedule(self.policy, cancelled, monday_at(15))

    def test_reschedule_after_concurrent_cancel(self):
        seen = self.booking
        self.resolver.cancel(seen.id)
        with self.assertRaises(ConcurrentModification):
            self.resolver.reschedule(self.policy, seen, monday_at(15))
        self.assertEqual(self.repository.get_booking(seen.id).status, STATUS_CANCELLED)


class TestNoOverlapInvariant(unittest.TestCase):
    def test_concurrent_mixed_operations(self):
        repository = InMemoryBookingRepository()
        policy = repository.save_policy(make_policy())
        resolver = BookingConflictResolver(repository, clock=CLOCK)
        seeded = [resolver.create(policy, monday_at(9, 0), "Seed", "seed@example.com")]
        starts = [monday_at(9) + timedelta(minutes=15 * i) for i in range(12)]

        def create(start):
            try:
                seeded.append(resolver.create(policy, start, "Racer", "racer@example.com"))
            except BookingError:
                pass

        def move(start):
            try:
                resolver.reschedule(policy, repository.get_booking(seeded[0].id), start)
            except BookingError:
                pass

        jobs = list(itertools.chain(
            ((create, s) for s in starts),
            ((create, s) for s in reversed(starts)),
            ((move, s) for s in starts[::3]),
        ))
        with ThreadPoolExecutor(max_workers=8) as pool:
            for fn, arg in jobs:
                pool.submit(fn, arg)

        bookings = confirmed(repository)
        self.assertTrue(bookings)
        for a, b in itertools.combinations(bookings, 2):
            self.assertFalse(
                intervals_overlap(a.start_time, a.end_time, b.start_time, b.end_time),
                msg=f"{a.start_time.isoformat()} overlaps {b.start_time.isoformat()}",
            )


if __name__ == "__main__":
    unittest.main()
