from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .models import (
    ActiveAllocation,
    Allocation,
    CapacitySetting,
    Month,
    ResourceMonthlyUtilization,
)
from .periods import DEFAULT_SAMPLE_DAY, month_midpoint

DEFAULT_AVAILABLE_CAPACITY = 100
DEFAULT_PLANNED_TIME_OFF = 0


def is_active_in_month(allocation: Allocation, month: Month, sample_day: int = DEFAULT_SAMPLE_DAY) -> bool:
    # Sampled on a single day of the month, not an interval overlap test.
    return allocation.covers(month_midpoint(month, sample_day))


def aggregate_month(
    month: Month,
    allocations: Iterable[Allocation],
    sample_day: int = DEFAULT_SAMPLE_DAY,
) -> Tuple[float, Tuple[ActiveAllocation, ...]]:
    active = [a for a in allocations if is_active_in_month(a, month, sample_day)]
    total = sum(a.utilization for a in active)
    return total, tuple(
        ActiveAllocation(
            allocation_id=a.id,
            project_id=a.project_id,
            project_name=a.project_name,
            utilization=a.utilization,
        )
        for a in active
    )


def group_allocations(allocations: Iterable[Allocation]) -> Dict[str, List[Allocation]]:
    grouped: Dict[str, List[Allocation]] = defaultdict(list)
    for allocation in allocations:
        grouped[allocation.resource_id].append(allocation)
    return dict(grouped)


class CapacityIndex:
    """In-memory lookup of capacity settings keyed by (resource, year, month)."""

    def __init__(self, entries: Mapping[Tuple[str, int, int], CapacitySetting]) -> None:
        self._entries = dict(entries)

    @classmethod
    def from_settings(cls, settings: Iterable[CapacitySetting]) -> "CapacityIndex":
        entries: Dict[Tuple[str, int, int], CapacitySetting] = {}
        for setting in settings:
            # First record for a key wins.
            entries.setdefault((setting.resource_id, setting.year, setting.month), setting)
        return cls(entries)

    def resolve(self, resource_id: str, month: Month) -> Tuple[float, float]:
        setting = self._entries.get((resource_id, month.year, month.month))
        if setting is None:
            return DEFAULT_AVAILABLE_CAPACITY, DEFAULT_PLANNED_TIME_OFF
        return setting.available_capacity, setting.planned_time_off


def effective_capacity(available: float, time_off: float) -> float:
    # Not clamped: time off above availability yields a negative capacity.
    return available - time_off


def monthly_utilization(
    resource_id: str,
    month: Month,
    allocations: Sequence[Allocation],
    capacity_index: CapacityIndex,
    sample_day: int = DEFAULT_SAMPLE_DAY,
) -> ResourceMonthlyUtilization:
    total, active = aggregate_month(month, allocations, sample_day)
    available, time_off = capacity_index.resolve(resource_id, month)
    capacity = effective_capacity(available, time_off)
    return ResourceMonthlyUtilization(
        resource_id=resource_id,
        month=month,
        total_utilization=total,
        available_capacity=available,
        planned_time_off=time_off,
        effective_capacity=capacity,
        remaining_capacity=max(0, capacity - total),
        overallocated=total > capacity,
        allocations=active,
    )
