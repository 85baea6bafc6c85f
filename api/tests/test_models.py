"""Tests for role, consumer and job type rules in models.py."""

import pytest

from models import (
    FINISHED_STATUSES,
    REOPENABLE_STATUSES,
    ConsumerType,
    JobStatus,
    JobType,
    Role,
    TranslatorType,
)


class TestRole:
    @pytest.mark.parametrize("role", [Role.ADMIN, Role.SUPER_ADMIN])
    def test_admins_list_all_jobs(self, role):
        assert role.is_admin
        assert role.can_list_all_jobs()

    @pytest.mark.parametrize("role", [Role.CUSTOMER, Role.TRANSLATOR])
    def test_others_do_not(self, role):
        assert not role.is_admin
        assert not role.can_list_all_jobs()


class TestJobType:
    @pytest.mark.parametrize(
        ("consumer", "expected"),
        [
            (ConsumerType.PAID, JobType.PAID),
            (ConsumerType.RWS, JobType.RWS),
            (ConsumerType.NGO, JobType.UNPAID),
            (None, JobType.PAID),
        ],
    )
    def test_for_consumer(self, consumer, expected):
        assert JobType.for_consumer(consumer) == expected

    def test_translator_type_matches_job_type(self):
        assert JobType.PAID.translator_type == TranslatorType.PROFESSIONAL
        assert JobType.RWS.translator_type == TranslatorType.RWS
        assert JobType.UNPAID.translator_type == TranslatorType.VOLUNTEER


class TestStatusSets:
    def test_completed_jobs_cannot_reopen(self):
        assert JobStatus.COMPLETED in FINISHED_STATUSES
        assert JobStatus.COMPLETED not in REOPENABLE_STATUSES

    def test_live_statuses_are_not_finished(self):
        for status in (JobStatus.PENDING, JobStatus.ASSIGNED, JobStatus.STARTED):
            assert status not in FINISHED_STATUSES
