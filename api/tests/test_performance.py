# SPDX-License-Identifier: Apache-2.0

"""
Tests for performance aggregation and the performance service.
"""

import pytest
from datetime import timedelta
from unittest.mock import Mock

from domain.errors import AuthorizationError
from domain.performance import (
    aggregate_performance, institution_statistics, report_from_dict, window_start
)
from models.enums import ComplaintStatus, PerformanceTimeframe
from services.performance import PerformanceService
from conftest import NOW, actor_for, make_complaint


def resolved(citizen, institution, days, **overrides):
    return make_complaint(
        citizen,
        institution,
        status=ComplaintStatus.RESOLVED,
        resolution_date=NOW + timedelta(days=days),
        **overrides
    )


@pytest.fixture
def history(citizen, institution, other_institution):
    """Gasabo: two on time, one late, one open. Nyarugenge: one on time."""
    return [
        resolved(citizen, institution, 1),
        resolved(citizen, institution, 2),
        resolved(citizen, institution, 5),
        make_complaint(citizen, institution),
        resolved(citizen, other_institution, 0.5),
    ]


class TestWindowStart:

    def test_week_is_seven_days(self):
        assert window_start(PerformanceTimeframe.WEEK, NOW) == NOW - timedelta(days=7)

    def test_month_and_year_are_calendar_offsets(self):
        assert window_start("month", NOW).month == 2
        assert window_start("month", NOW).day == 1
        assert window_start("year", NOW).year == 2023

    def test_all_time_and_unknown_have_no_bound(self):
        assert window_start("all-time", NOW) is None
        assert window_start("decade", NOW) is None
        assert window_start(None, NOW) is None


class TestAggregatePerformance:

    def test_institution_metrics(self, history, institution, other_institution, province_institution):
        report = aggregate_performance(
            history, [institution, other_institution, province_institution], now=NOW
        )
        rows = {row.institution_id: row for row in report.institution_performance}
        gasabo = rows[institution.id]

        assert gasabo.total_complaints == 4
        assert gasabo.resolved_complaints == 3
        assert gasabo.resolved_on_time == 2
        assert gasabo.resolution_rate == 75.0
        assert gasabo.on_time_resolution_rate == pytest.approx(66.667, rel=1e-3)
        assert gasabo.average_resolution_time == 2.7

    def test_institutions_without_complaints_report_zeros(self, history, institution, province_institution):
        report = aggregate_performance(history, [institution, province_institution], now=NOW)
        empty = next(r for r in report.institution_performance if r.institution_id == province_institution.id)

        assert empty.total_complaints == 0
        assert empty.resolution_rate == 0.0
        assert empty.on_time_resolution_rate == 0.0
        assert empty.average_resolution_time is None

    def test_ranked_by_on_time_rate_then_name(self, history, institution, other_institution, province_institution):
        report = aggregate_performance(
            history, [province_institution, institution, other_institution], now=NOW
        )

        assert [r.institution_id for r in report.institution_performance] == [
            other_institution.id, institution.id, province_institution.id
        ]

    def test_system_totals(self, history, institution, other_institution):
        report = aggregate_performance(history, [institution, other_institution], now=NOW)
        stats = report.system_stats

        assert stats.total_complaints == 5
        assert stats.total_resolved == 4
        assert stats.total_resolved_on_time == 3
        assert stats.system_resolution_rate == 80.0
        assert stats.system_on_time_rate == 75.0

    def test_unknown_institutions_are_not_attributed(self, citizen, institution, other_institution):
        complaints = [make_complaint(citizen, institution), make_complaint(citizen, other_institution)]

        report = aggregate_performance(complaints, [institution], now=NOW)

        assert report.system_stats.total_complaints == 1

    def test_window_excludes_older_complaints(self, citizen, institution):
        complaints = [
            make_complaint(citizen, institution, submission_date=NOW - timedelta(days=10)),
            make_complaint(citizen, institution, submission_date=NOW - timedelta(days=2)),
        ]

        week = aggregate_performance(complaints, [institution], PerformanceTimeframe.WEEK, NOW)
        month = aggregate_performance(complaints, [institution], PerformanceTimeframe.MONTH, NOW)

        assert week.system_stats.total_complaints == 1
        assert month.system_stats.total_complaints == 2
        assert week.timeframe == "week"

    def test_empty_history(self, institution):
        report = aggregate_performance([], [institution], now=NOW)

        assert report.system_stats.system_resolution_rate == 0.0
        assert report.system_stats.system_on_time_rate == 0.0
        assert report.timeframe == "all-time"

    def test_dict_form_survives_cache_round_trip(self, history, institution, other_institution):
        report = aggregate_performance(history, [institution, other_institution], PerformanceTimeframe.WEEK, NOW)

        restored = report_from_dict(report.to_dict())

        assert restored.to_dict() == report.to_dict()


class TestInstitutionStatistics:

    def test_whole_number_statistics(self, history, institution):
        stats = institution_statistics(institution, history)

        assert stats == {
            "totalComplaints": 4,
            "resolvedComplaints": 3,
            "performance": 75,
            "avgResolutionTime": 3
        }

    def test_half_rounds_up(self, citizen, institution):
        complaints = [resolved(citizen, institution, 1)] + [make_complaint(citizen, institution) for _ in range(7)]

        assert institution_statistics(institution, complaints)["performance"] == 13

    def test_no_complaints(self, province_institution):
        assert institution_statistics(province_institution, []) == {
            "totalComplaints": 0,
            "resolvedComplaints": 0,
            "performance": 0,
            "avgResolutionTime": 0
        }


class TestPerformanceService:

    def setup_method(self):
        self.cache = Mock()
        self.cache.is_available.return_value = True
        self.cache.get_cached_performance_report.return_value = None

    def _service(self, complaints, users, clock):
        return PerformanceService(complaints, users, cache=self.cache, cache_ttl=60, clock=clock)

    def test_report_is_computed_and_cached(self, complaints, users, clock, admin, citizen, institution):
        complaints.create(make_complaint(citizen, institution))
        service = self._service(complaints, users, clock)

        report = service.report(actor_for(admin), PerformanceTimeframe.MONTH)

        assert report.timeframe == "month"
        assert report.system_stats.total_complaints == 1
        self.cache.cache_performance_report.assert_called_once_with("month", report.to_dict(), 60)

    def test_cached_report_is_returned(self, users, clock, admin, institution):
        cached = {
            "timeframe": "week",
            "windowStart": None,
            "systemStats": {"totalComplaints": 9},
            "institutionPerformance": [
                {"institutionId": institution.id, "institutionName": "Gasabo District Office", "totalComplaints": 9}
            ]
        }
        self.cache.get_cached_performance_report.return_value = cached
        complaints = Mock()

        report = self._service(complaints, users, clock).report(actor_for(admin), "week")

        assert report.system_stats.total_complaints == 9
        complaints.find_submitted_since.assert_not_called()

    def test_malformed_cache_entry_is_recomputed(self, complaints, users, clock, admin):
        self.cache.get_cached_performance_report.return_value = {"institutionPerformance": [{}]}

        report = self._service(complaints, users, clock).report(actor_for(admin), "week")

        assert report.system_stats.total_complaints == 0

    def test_non_admin_is_rejected(self, complaints, users, clock, institution):
        with pytest.raises(AuthorizationError):
            self._service(complaints, users, clock).report(actor_for(institution))

    def test_institution_directory(self, complaints, users, clock, admin, citizen, institution):
        complaints.create(resolved(citizen, institution, 2))
        complaints.create(make_complaint(citizen, institution))

        rows = self._service(complaints, users, clock).institutions(actor_for(admin))
        gasabo = next(row for row in rows if row["id"] == institution.id)

        assert gasabo["institutionName"] == "Gasabo District Office"
        assert gasabo["district"] == "Gasabo"
        assert gasabo["totalComplaints"] == 2
        assert gasabo["performance"] == 50
        assert gasabo["avgResolutionTime"] == 2
