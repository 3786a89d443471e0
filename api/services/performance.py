# SPDX-License-Identifier: Apache-2.0

"""
Performance reporting service.

Loads complaint history and institutions, runs the aggregation and caches
the resulting report in Redis when available.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from opentelemetry import trace

from domain.authorization import can_view_performance, enforce
from domain.performance import (
    PerformanceReport, aggregate_performance, institution_statistics,
    report_from_dict, window_start
)
from models.base import utc_now
from models.entities import Actor
from models.enums import PerformanceTimeframe
from .redis import RedisService
from .repositories import ComplaintRepository, UserRepository

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class PerformanceService:
    """Builds performance reports and the institution directory."""

    def __init__(
        self,
        complaints: ComplaintRepository,
        users: UserRepository,
        cache: Optional[RedisService] = None,
        cache_ttl: int = 300,
        clock: Callable[[], datetime] = utc_now
    ):
        self.complaints = complaints
        self.users = users
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.clock = clock

    def report(
        self,
        actor: Actor,
        timeframe: Union[PerformanceTimeframe, str] = PerformanceTimeframe.ALL_TIME
    ) -> PerformanceReport:
        """
        Performance report for a reporting window.

        Raises:
            AuthorizationError: If the actor is not an administrator
        """
        enforce(can_view_performance(actor))
        timeframe = getattr(timeframe, "value", timeframe)

        cached = self._read_cache(timeframe)
        if cached is not None:
            return cached

        with tracer.start_as_current_span("performance.aggregate") as span:
            span.set_attribute("performance.timeframe", timeframe)
            now = self.clock()

            complaints = self.complaints.find_submitted_since(window_start(timeframe, now))
            institutions = self.users.list_institutions()
            report = aggregate_performance(complaints, institutions, timeframe, now)

            span.set_attributes({
                "performance.complaints": report.system_stats.total_complaints,
                "performance.institutions": len(report.institution_performance)
            })

        logger.info(
            "Performance report computed",
            extra={
                "extra_fields": {
                    "timeframe": timeframe,
                    "total_complaints": report.system_stats.total_complaints,
                    "institutions": len(report.institution_performance)
                }
            }
        )

        self._write_cache(timeframe, report)
        return report

    def institutions(self, actor: Actor) -> List[Dict[str, Any]]:
        """Every institution with its headline statistics."""
        enforce(can_view_performance(actor))

        institutions = self.users.list_institutions()
        complaints = self.complaints.find_submitted_since(None)

        rows = []
        for institution in institutions:
            row = {
                "id": institution.id,
                "institutionName": institution.display_name,
                "email": institution.email,
                "phone": institution.phone,
                "province": institution.province,
                "district": institution.district
            }
            row.update(institution_statistics(institution, complaints))
            rows.append(row)
        return rows

    def _read_cache(self, timeframe: str) -> Optional[PerformanceReport]:
        if self.cache is None or not self.cache.is_available():
            return None

        data = self.cache.get_cached_performance_report(timeframe)
        if data is None:
            return None

        try:
            return report_from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Ignoring malformed cached performance report",
                extra={"extra_fields": {"timeframe": timeframe, "error": str(e)}}
            )
            return None

    def _write_cache(self, timeframe: str, report: PerformanceReport) -> None:
        if self.cache is None or not self.cache.is_available():
            return
        self.cache.cache_performance_report(timeframe, report.to_dict(), self.cache_ttl)
