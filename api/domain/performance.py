# SPDX-License-Identifier: Apache-2.0

"""
Performance aggregation domain logic.

Pure, side-effect-free reductions over complaint history. The service layer
fetches complaints and institutions; everything here is arithmetic.
"""

import math
from typing import Any, Dict, Iterable, List, Optional, Union
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from models.base import utc_now, ensure_utc
from models.entities import Complaint, User
from models.enums import PerformanceTimeframe
from .deadlines import SECONDS_PER_DAY


@dataclass
class InstitutionPerformance:
    """Per-institution metrics for a reporting window."""
    institution_id: str
    institution_name: str
    total_complaints: int = 0
    resolved_complaints: int = 0
    resolved_on_time: int = 0
    average_resolution_time: Optional[float] = None
    resolution_rate: float = 0.0
    on_time_resolution_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "institutionId": self.institution_id,
            "institutionName": self.institution_name,
            "totalComplaints": self.total_complaints,
            "resolvedComplaints": self.resolved_complaints,
            "resolvedOnTime": self.resolved_on_time,
            "averageResolutionTime": self.average_resolution_time,
            "resolutionRate": self.resolution_rate,
            "onTimeResolutionRate": self.on_time_resolution_rate
        }


@dataclass
class SystemStats:
    """Totals across every institution in the window."""
    total_complaints: int = 0
    total_resolved: int = 0
    total_resolved_on_time: int = 0
    system_resolution_rate: float = 0.0
    system_on_time_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalComplaints": self.total_complaints,
            "totalResolved": self.total_resolved,
            "totalResolvedOnTime": self.total_resolved_on_time,
            "systemResolutionRate": self.system_resolution_rate,
            "systemOnTimeRate": self.system_on_time_rate
        }


@dataclass
class PerformanceReport:
    timeframe: str
    system_stats: SystemStats
    institution_performance: List[InstitutionPerformance] = field(default_factory=list)
    window_start: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timeframe": self.timeframe,
            "windowStart": self.window_start.isoformat() if self.window_start else None,
            "systemStats": self.system_stats.to_dict(),
            "institutionPerformance": [p.to_dict() for p in self.institution_performance]
        }


def window_start(
    timeframe: Union[PerformanceTimeframe, str, None],
    now: Optional[datetime] = None
) -> Optional[datetime]:
    """
    Lower bound on submission date for a reporting window.

    Weeks are 7 days; months and years are calendar offsets. All-time (and
    any unrecognised value) has no lower bound.
    """
    now = ensure_utc(now) if now else utc_now()
    value = getattr(timeframe, "value", timeframe)

    if value == PerformanceTimeframe.WEEK.value:
        return now - timedelta(days=7)
    if value == PerformanceTimeframe.MONTH.value:
        return now - relativedelta(months=1)
    if value == PerformanceTimeframe.YEAR.value:
        return now - relativedelta(years=1)
    return None


def resolution_days(complaint: Complaint) -> float:
    """Elapsed days from submission to resolution."""
    elapsed = complaint.resolution_date - complaint.submission_date
    return elapsed.total_seconds() / SECONDS_PER_DAY


def resolution_rate(resolved: int, total: int) -> float:
    """Resolved share in percent; zero when there are no complaints."""
    if total == 0:
        return 0.0
    return resolved / total * 100


def on_time_rate(resolved_on_time: int, resolved: int) -> float:
    return resolved_on_time / max(resolved, 1) * 100


def _summarise(institution: User, complaints: List[Complaint]) -> InstitutionPerformance:
    resolved = [c for c in complaints if c.is_resolved()]
    on_time = [c for c in resolved if c.resolved_on_time()]

    average = None
    if resolved:
        average = round(sum(resolution_days(c) for c in resolved) / len(resolved), 1)

    return InstitutionPerformance(
        institution_id=institution.id,
        institution_name=institution.display_name,
        total_complaints=len(complaints),
        resolved_complaints=len(resolved),
        resolved_on_time=len(on_time),
        average_resolution_time=average,
        resolution_rate=resolution_rate(len(resolved), len(complaints)),
        on_time_resolution_rate=on_time_rate(len(on_time), len(resolved))
    )


def aggregate_performance(
    complaints: Iterable[Complaint],
    institutions: Iterable[User],
    timeframe: Union[PerformanceTimeframe, str, None] = PerformanceTimeframe.ALL_TIME,
    now: Optional[datetime] = None
) -> PerformanceReport:
    """
    Compute per-institution and system-wide resolution statistics.

    Args:
        complaints: Complaint history (filtered here by the window as well)
        institutions: Every known institution; those without complaints in
            the window report zeros
        timeframe: Reporting window
        now: Aggregation run time

    Returns:
        PerformanceReport ranked by on-time resolution rate, highest first
    """
    start = window_start(timeframe, now)
    known = {i.id: i for i in institutions}
    grouped: Dict[str, List[Complaint]] = {institution_id: [] for institution_id in known}

    for complaint in complaints:
        if start is not None and complaint.submission_date < start:
            continue
        # Complaints for institutions that no longer exist are not attributed
        if complaint.institution_id in grouped:
            grouped[complaint.institution_id].append(complaint)

    rows = [_summarise(known[iid], items) for iid, items in grouped.items()]
    rows.sort(key=lambda r: (-r.on_time_resolution_rate, r.institution_name))

    total = sum(r.total_complaints for r in rows)
    resolved = sum(r.resolved_complaints for r in rows)
    on_time = sum(r.resolved_on_time for r in rows)

    stats = SystemStats(
        total_complaints=total,
        total_resolved=resolved,
        total_resolved_on_time=on_time,
        system_resolution_rate=resolution_rate(resolved, total),
        system_on_time_rate=on_time_rate(on_time, resolved)
    )

    return PerformanceReport(
        timeframe=getattr(timeframe, "value", timeframe) or PerformanceTimeframe.ALL_TIME.value,
        system_stats=stats,
        institution_performance=rows,
        window_start=start
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def institution_statistics(
    institution: User,
    complaints: Iterable[Complaint]
) -> Dict[str, Any]:
    """
    Headline statistics for the institution directory.

    Returns:
        Dictionary with totalComplaints, resolvedComplaints, performance
        (whole-percent resolution rate) and avgResolutionTime (whole days)
    """
    items = [c for c in complaints if c.institution_id == institution.id]
    resolved = [c for c in items if c.is_resolved()]

    average = 0.0
    if resolved:
        average = sum(resolution_days(c) for c in resolved) / len(resolved)

    return {
        "totalComplaints": len(items),
        "resolvedComplaints": len(resolved),
        "performance": _round_half_up(resolution_rate(len(resolved), len(items))),
        "avgResolutionTime": _round_half_up(average)
    }


def report_from_dict(data: Dict[str, Any]) -> PerformanceReport:
    """Rebuild a report from its cached dictionary form."""
    stats = data.get("systemStats", {})
    start = data.get("windowStart")
    return PerformanceReport(
        timeframe=data.get("timeframe", PerformanceTimeframe.ALL_TIME.value),
        window_start=ensure_utc(datetime.fromisoformat(start)) if start else None,
        system_stats=SystemStats(
            total_complaints=stats.get("totalComplaints", 0),
            total_resolved=stats.get("totalResolved", 0),
            total_resolved_on_time=stats.get("totalResolvedOnTime", 0),
            system_resolution_rate=stats.get("systemResolutionRate", 0.0),
            system_on_time_rate=stats.get("systemOnTimeRate", 0.0)
        ),
        institution_performance=[
            InstitutionPerformance(
                institution_id=row["institutionId"],
                institution_name=row["institutionName"],
                total_complaints=row.get("totalComplaints", 0),
                resolved_complaints=row.get("resolvedComplaints", 0),
                resolved_on_time=row.get("resolvedOnTime", 0),
                average_resolution_time=row.get("averageResolutionTime"),
                resolution_rate=row.get("resolutionRate", 0.0),
                on_time_resolution_rate=row.get("onTimeResolutionRate", 0.0)
            )
            for row in data.get("institutionPerformance", [])
        ]
    )
