from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

UNASSIGNED_ROLE_LABEL = "Unassigned"


def _normalize_label(value: object) -> str:
    return " ".join(str(value).split()).casefold()


@dataclass(frozen=True)
class _Label:
    """Display label compared by its normalized key only."""

    label: str = field(compare=False)
    key: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "label", " ".join(str(self.label).split()))
        object.__setattr__(self, "key", _normalize_label(self.label))

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class RoleId(_Label):
    pass


@dataclass(frozen=True)
class SkillId(_Label):
    pass


def role_from_label(value: object) -> Optional[RoleId]:
    if value is None:
        return None
    text = str(value).strip()
    return RoleId(text) if text else None


def skills_from_labels(values: Iterable[object]) -> FrozenSet[SkillId]:
    return frozenset(SkillId(str(v)) for v in values if str(v).strip())


@dataclass(frozen=True)
class Resource:
    """Staffed resource with its resolved role and skills."""

    id: str
    name: str
    role: Optional[RoleId]
    skills: FrozenSet[SkillId] = frozenset()

    @property
    def role_label(self) -> str:
        return self.role.label if self.role else UNASSIGNED_ROLE_LABEL

    def shares_role(self, other: "Resource") -> bool:
        """True when both resources carry the same role.

        Unlike a plain id comparison, two resources without a role do not
        share one: a missing role is not a role.
        """
        return self.role is not None and other.role is not None and self.role == other.role

    def matching_skills(self, other: "Resource") -> FrozenSet[SkillId]:
        return self.skills & other.skills

    def sorted_skills(self) -> List[str]:
        return [skill.label for skill in sorted(self.skills, key=lambda s: s.key)]

    def ref(self) -> Dict[str, object]:
        return {"id": self.id, "name": self.name, "role": self.role_label}


@dataclass(frozen=True)
class Allocation:
    """Committed utilization of one resource to a project over an inclusive date span."""

    id: str
    resource_id: str
    project_id: str
    project_name: str
    start_date: date
    end_date: date
    utilization: float

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class CapacitySetting:
    resource_id: str
    year: int
    month: int
    available_capacity: float = 100.0
    planned_time_off: float = 0.0


@dataclass(frozen=True)
class Month:
    year: int
    month: int
    label: str


@dataclass(frozen=True)
class ActiveAllocation:
    allocation_id: str
    project_id: str
    project_name: str
    utilization: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "allocationId": self.allocation_id,
            "projectId": self.project_id,
            "projectName": self.project_name,
            "utilization": self.utilization,
        }


@dataclass(frozen=True)
class ResourceMonthlyUtilization:
    resource_id: str
    month: Month
    total_utilization: float
    available_capacity: float
    planned_time_off: float
    effective_capacity: float
    remaining_capacity: float
    overallocated: bool
    allocations: Tuple[ActiveAllocation, ...] = ()

    @property
    def label(self) -> str:
        return self.month.label

    def to_dict(self) -> Dict[str, object]:
        return {
            "year": self.month.year,
            "month": self.month.month,
            "label": self.month.label,
            "totalUtilization": self.total_utilization,
            "availableCapacity": self.available_capacity,
            "plannedTimeOff": self.planned_time_off,
            "effectiveCapacity": self.effective_capacity,
            "remainingCapacity": self.remaining_capacity,
            "overallocated": self.overallocated,
            "allocations": [a.to_dict() for a in self.allocations],
        }


@dataclass(frozen=True)
class ResourceForecast:
    resource: Resource
    avg_utilization: float
    trend_direction: str
    forecast_status: str
    months: Tuple[ResourceMonthlyUtilization, ...]

    @property
    def resource_id(self) -> str:
        return self.resource.id

    def utilization_series(self) -> List[float]:
        return [m.total_utilization for m in self.months]

    def month_by_label(self, label: str) -> Optional[ResourceMonthlyUtilization]:
        for entry in self.months:
            if entry.label == label:
                return entry
        return None

    def to_dict(self) -> Dict[str, object]:
        return {
            "resourceId": self.resource.id,
            "name": self.resource.name,
            "role": self.resource.role_label,
            "avgUtilization": self.avg_utilization,
            "trendDirection": self.trend_direction,
            "forecastStatus": self.forecast_status,
            "months": [m.to_dict() for m in self.months],
        }


@dataclass(frozen=True)
class ForecastConfig:
    default_months: int = 6
    sample_day: int = 15
    trend_threshold: float = 0.5
    transfer_target_cap: float = 90.0
    underallocation_threshold: float = 70.0
    transferable_allocation_max: float = 50.0
    max_recommendations_per_resource: int = 3
    bench_allocation_threshold: float = 20.0
    max_workers: int = 1
    logging_level: str = "INFO"
