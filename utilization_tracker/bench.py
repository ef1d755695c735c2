from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from dateutil.rrule import DAILY, rrule

from .models import Allocation, Resource

DEFAULT_BENCH_THRESHOLD = 20.0


@dataclass(frozen=True)
class BenchPeriod:
    start_date: date
    end_date: date
    days: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "days": self.days,
        }


@dataclass(frozen=True)
class BenchForecast:
    resource: Resource
    total_bench_days: int
    bench_percentage: float
    bench_periods: Tuple[BenchPeriod, ...]

    def to_dict(self) -> Dict[str, object]:
        return {
            "resourceId": self.resource.id,
            "name": self.resource.name,
            "role": self.resource.role_label,
            "totalBenchDays": self.total_bench_days,
            "benchPercentage": self.bench_percentage,
            "benchPeriods": [p.to_dict() for p in self.bench_periods],
        }


def predict_bench_time(
    resource: Resource,
    allocations: Sequence[Allocation],
    start: date,
    end: date,
    threshold: float = DEFAULT_BENCH_THRESHOLD,
) -> BenchForecast:
    """Walk the window day by day and collect runs without a meaningful allocation.

    A day counts as allocated when some allocation covers it with utilization
    strictly above ``threshold``.
    """
    committed = [a for a in allocations if a.utilization > threshold]
    periods: List[BenchPeriod] = []
    run_start: Optional[date] = None
    run_end: Optional[date] = None
    total_days = 0
    for moment in rrule(DAILY, dtstart=start, until=end):
        day = moment.date()
        total_days += 1
        if any(a.covers(day) for a in committed):
            if run_start is not None:
                periods.append(BenchPeriod(run_start, run_end, (run_end - run_start).days + 1))
                run_start = run_end = None
            continue
        if run_start is None:
            run_start = day
        run_end = day
    if run_start is not None:
        periods.append(BenchPeriod(run_start, run_end, (run_end - run_start).days + 1))
    bench_days = sum(p.days for p in periods)
    return BenchForecast(
        resource=resource,
        total_bench_days=bench_days,
        bench_percentage=bench_days / total_days * 100 if total_days else 0.0,
        bench_periods=tuple(periods),
    )
