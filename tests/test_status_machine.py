"""Tests for the job lifecycle guards."""

from datetime import date, datetime, timedelta

import pytest
from hypothesis import given, strategies as st

from farmwork.domain.errors import (
    InvalidStatusChange,
    JobCompleted,
    NotInProgress,
    ValidationError,
    WorkerCountLocked,
)
from farmwork.domain.states import FORWARD_TRANSITIONS, JobStatus
from farmwork.domain.status_machine import (
    check_job_status,
    is_job_date_reached,
    is_job_filled,
    next_status,
    validate_manual_edit,
)

from conftest import TODAY, TOMORROW, make_job

YESTERDAY = TODAY - timedelta(days=1)


class TestDateReached:
    def test_no_date_never_reached(self):
        assert not is_job_date_reached(None, TODAY)

    def test_today_and_past(self):
        assert is_job_date_reached(TODAY, TODAY)
        assert is_job_date_reached(YESTERDAY, TODAY)

    def test_future(self):
        assert not is_job_date_reached(TOMORROW, TODAY)

    def test_datetime_compares_by_day(self):
        assert is_job_date_reached(datetime(2026, 3, 10, 23, 59), TODAY)


class TestNextStatus:
    def test_open_becomes_filled_when_full(self):
        job = make_job(required_workers=3, accepted_worker_ids=["a", "b", "c"], preferred_date=TOMORROW)
        assert check_job_status(job, TODAY).status == JobStatus.FILLED

    def test_open_partial_stays_open(self):
        job = make_job(required_workers=3, accepted_worker_ids=["a"], preferred_date=TOMORROW)
        assert check_job_status(job, TODAY).status == JobStatus.OPEN

    def test_open_goes_in_progress_when_date_reached(self):
        job = make_job(required_workers=2, accepted_worker_ids=["a"], preferred_date=TODAY)
        assert check_job_status(job, TODAY).status == JobStatus.IN_PROGRESS

    def test_full_and_date_reached_in_one_pass(self):
        job = make_job(required_workers=1, accepted_worker_ids=["a"], preferred_date=YESTERDAY)
        assert check_job_status(job, TODAY).status == JobStatus.IN_PROGRESS

    def test_filled_goes_in_progress(self):
        job = make_job(
            required_workers=1, accepted_worker_ids=["a"], preferred_date=TODAY, status=JobStatus.FILLED
        )
        assert check_job_status(job, TODAY).status == JobStatus.IN_PROGRESS

    def test_no_accepted_workers_stays_open_on_the_day(self):
        job = make_job(preferred_date=YESTERDAY)
        assert check_job_status(job, TODAY).status == JobStatus.OPEN

    def test_no_preferred_date_never_in_progress(self):
        job = make_job(required_workers=1, accepted_worker_ids=["a"], preferred_date=None)
        assert check_job_status(job, TODAY).status == JobStatus.FILLED

    def test_completed_is_terminal(self):
        job = make_job(
            required_workers=1, accepted_worker_ids=["a"], preferred_date=YESTERDAY, status=JobStatus.COMPLETED
        )
        assert check_job_status(job, TODAY).status == JobStatus.COMPLETED

    def test_in_progress_never_moves_back(self):
        job = make_job(required_workers=5, accepted_worker_ids=["a"], preferred_date=TOMORROW,
                       status=JobStatus.IN_PROGRESS)
        assert check_job_status(job, TODAY).status == JobStatus.IN_PROGRESS

    def test_check_is_pure(self):
        job = make_job(required_workers=1, accepted_worker_ids=["a"])
        checked = check_job_status(job, TODAY)
        assert job.status == JobStatus.OPEN
        assert checked is not job
        checked.accepted_worker_ids.append("b")
        assert job.accepted_worker_ids == ["a"]

    def test_is_job_filled(self):
        assert is_job_filled(make_job(required_workers=1, accepted_worker_ids=["a"]))
        assert not is_job_filled(make_job(required_workers=2, accepted_worker_ids=["a"]))


@st.composite
def job_inputs(draw):
    required = draw(st.integers(min_value=1, max_value=10))
    accepted = draw(st.integers(min_value=0, max_value=required))
    status = draw(st.sampled_from(list(JobStatus)))
    preferred = draw(st.one_of(st.none(), st.dates(min_value=date(2026, 1, 1), max_value=date(2026, 6, 1))))
    return status, accepted, required, preferred


@pytest.mark.property
class TestStatusProperties:
    @given(job_inputs())
    def test_idempotent(self, inputs):
        status, accepted, required, preferred = inputs
        once = next_status(status, accepted, required, preferred, TODAY)
        assert next_status(once, accepted, required, preferred, TODAY) == once

    @given(job_inputs())
    def test_only_forward_edges(self, inputs):
        status, accepted, required, preferred = inputs
        result = next_status(status, accepted, required, preferred, TODAY)
        assert result == status or result in FORWARD_TRANSITIONS[status]

    @given(job_inputs())
    def test_never_completes_automatically(self, inputs):
        status, accepted, required, preferred = inputs
        result = next_status(status, accepted, required, preferred, TODAY)
        if status != JobStatus.COMPLETED:
            assert result != JobStatus.COMPLETED

    @given(job_inputs())
    def test_in_progress_requires_an_accepted_worker(self, inputs):
        status, accepted, required, preferred = inputs
        result = next_status(status, accepted, required, preferred, TODAY)
        if result == JobStatus.IN_PROGRESS and status != JobStatus.IN_PROGRESS:
            assert accepted > 0


class TestValidateManualEdit:
    def test_completed_job_rejects_edits(self):
        job = make_job(status=JobStatus.COMPLETED)
        with pytest.raises(JobCompleted):
            validate_manual_edit(job, False, new_required_workers=5)

    def test_required_workers_must_be_positive(self):
        with pytest.raises(ValidationError):
            validate_manual_edit(make_job(), False, new_required_workers=0)

    def test_cannot_go_below_accepted(self):
        job = make_job(required_workers=3, accepted_worker_ids=["a", "b"])
        with pytest.raises(WorkerCountLocked):
            validate_manual_edit(job, True, new_required_workers=1)

    def test_cannot_reduce_once_applications_exist(self):
        job = make_job(required_workers=3)
        with pytest.raises(WorkerCountLocked):
            validate_manual_edit(job, True, new_required_workers=2)

    def test_increase_allowed_with_applications(self):
        validate_manual_edit(make_job(required_workers=3), True, new_required_workers=4)

    def test_reduce_allowed_without_applications(self):
        validate_manual_edit(make_job(required_workers=3), False, new_required_workers=1)

    def test_complete_requires_in_progress(self):
        with pytest.raises(NotInProgress):
            validate_manual_edit(make_job(status=JobStatus.FILLED), True, new_status=JobStatus.COMPLETED)

    def test_complete_from_in_progress(self):
        job = make_job(status=JobStatus.IN_PROGRESS, accepted_worker_ids=["a"])
        validate_manual_edit(job, True, new_status=JobStatus.COMPLETED)

    def test_in_progress_needs_accepted_workers(self):
        with pytest.raises(InvalidStatusChange):
            validate_manual_edit(make_job(), True, new_status=JobStatus.IN_PROGRESS)

    def test_manual_in_progress_with_workers(self):
        job = make_job(accepted_worker_ids=["a"], preferred_date=TOMORROW)
        validate_manual_edit(job, True, new_status=JobStatus.IN_PROGRESS)

    def test_manual_back_to_open(self):
        validate_manual_edit(make_job(status=JobStatus.FILLED), True, new_status=JobStatus.OPEN)
