"""Tests for booking.commit - validate, re-check and write."""

import gc
import threading
import time

import pytest

from booking import BookingCommitter, BookingEngine, CollaboratorUnavailableError, InvalidRequestError, PatientLocks
from models import BookingRequest, HistoryStatus, IssueType
from providers import InMemoryReservationWriter

from conftest import at, record


class FailingWriter:
    def write(self, request):
        raise IOError("disk full")


class SlowHistoryWriter:
    """Writes into the history provider after a delay, like a slow database."""

    def __init__(self, history_provider, delay=0.2):
        self.history_provider = history_provider
        self.delay = delay
        self.written = []

    def write(self, request):
        time.sleep(self.delay)
        self.history_provider.add(record(
            request.patient_id, request.menu_id, "Menu C", request.candidate_datetime, HistoryStatus.SCHEDULED
        ))
        self.written.append(request)
        return f"RSV{len(self.written):05d}"


@pytest.fixture
def writer():
    return InMemoryReservationWriter()


@pytest.fixture
def committer(validator, writer, vacancy_source):
    return BookingCommitter(validator, writer, vacancy_source=vacancy_source)


class TestCommit:
    """Tests for the guarded write."""

    def test_valid_booking_is_written(self, committer, writer):
        """A valid, still-offered slot is written and its id returned."""
        outcome = committer.commit(BookingRequest(patient_id="P1", menu_id="C", candidate_datetime=at(10)))

        assert outcome.committed
        assert outcome.reservation_id == "RSV00001"
        assert len(writer.written) == 1
        assert outcome.validation.is_valid

    def test_constraint_violation_not_written(self, committer, writer, history_provider, days_ago):
        """Interval violations refuse the commit without calling the writer."""
        history_provider.add(record("P1", "A", "Menu A", days_ago(5)))

        outcome = committer.commit(BookingRequest(patient_id="P1", menu_id="A", candidate_datetime=at(4)))

        assert not outcome.committed
        assert outcome.reservation_id is None
        assert [e.type for e in outcome.errors] == [IssueType.TREATMENT_INTERVAL]
        assert writer.written == []

    def test_slot_no_longer_offered(self, committer, writer):
        """A time the vacancy source does not offer is refused."""
        outcome = committer.commit(BookingRequest(patient_id="P1", menu_id="C", candidate_datetime=at(10, 10, 30)))

        assert not outcome.committed
        assert [e.type for e in outcome.errors] == [IssueType.SLOT_UNAVAILABLE]
        assert writer.written == []

    def test_without_vacancy_source_skips_recheck(self, validator, writer):
        """Only validation guards the write when no vacancy source is wired."""
        committer = BookingCommitter(validator, writer)

        outcome = committer.commit(BookingRequest(patient_id="P1", menu_id="C", candidate_datetime=at(10, 10, 30)))

        assert outcome.committed

    def test_writer_failure_is_collaborator_error(self, validator, vacancy_source):
        """A failing writer surfaces as an unavailable collaborator."""
        committer = BookingCommitter(validator, FailingWriter(), vacancy_source=vacancy_source)

        with pytest.raises(CollaboratorUnavailableError):
            committer.commit(BookingRequest(patient_id="P1", menu_id="C", candidate_datetime=at(10)))

    def test_candidate_required(self, committer):
        """A commit needs a candidate datetime."""
        with pytest.raises(InvalidRequestError):
            committer.commit(BookingRequest(patient_id="P1", menu_id="C"))


class TestPatientLocks:
    """Tests for the per-patient lock registry."""

    def test_same_patient_same_lock(self):
        """While a lock is referenced, the same patient gets it back."""
        locks = PatientLocks()
        held = locks.get("P1")

        assert locks.get("P1") is held
        assert locks.get("P2") is not held

    def test_released_locks_are_dropped(self, committer):
        """The registry does not keep an entry per patient ever seen."""
        for patient_id in ("P1", "P2", "P3"):
            committer.commit(BookingRequest(patient_id=patient_id, menu_id="C", candidate_datetime=at(10)))
        gc.collect()

        assert len(committer.locks) == 0


class TestEngineCommit:
    """Tests for commits routed through BookingEngine."""

    @pytest.fixture
    def engine(self, catalog, matrix, vacancy_source, history_provider, resource_provider, clock):
        return BookingEngine(catalog, matrix, vacancy_source, history_provider, resource_provider, clock)

    def test_committers_share_locks(self, engine, writer):
        """Every committer of one engine uses the same lock registry."""
        assert engine.committer(writer).locks is engine.committer(writer).locks

    def test_concurrent_commits_serialized_per_patient(self, engine, history_provider):
        """Two same-day Menu C bookings racing through the engine: only one is written."""
        writer = SlowHistoryWriter(history_provider)
        start = threading.Barrier(2)
        outcomes = []

        def book(hour):
            start.wait()
            outcomes.append(engine.commit(
                BookingRequest(patient_id="P1", menu_id="C", candidate_datetime=at(10, hour)), writer
            ))

        threads = [threading.Thread(target=book, args=(hour,)) for hour in (10, 11)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert sorted(o.committed for o in outcomes) == [False, True]
        refused = next(o for o in outcomes if not o.committed)
        assert [e.type for e in refused.errors] == [IssueType.SAME_DAY_CONSTRAINT]
        assert len(writer.written) == 1
