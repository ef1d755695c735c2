"""
Bottleneck detection at resource, role and project granularity.

Resource and role bottlenecks are scored with a severity that grows with the
mean overallocation and with how many months it persists. Project bottlenecks
are classified by staffing concentration instead.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    UNASSIGNED_ROLE_LABEL,
    ActiveAllocation,
    Allocation,
    Month,
    Resource,
    ResourceForecast,
    RoleId,
)
from .periods import DEFAULT_SAMPLE_DAY
from .utilization import is_active_in_month

PROJECT_CRITICAL_RESOURCE_COUNT = 3
RISK_ORDER: Dict[str, int] = {"high": 3, "medium": 2, "low": 1, "none": 0}


def bottleneck_severity(overallocation_amounts: Sequence[float]) -> float:
    if not overallocation_amounts:
        return 0.0
    avg_overallocation = sum(overallocation_amounts) / len(overallocation_amounts)
    duration_factor = min(len(overallocation_amounts) / 3, 1.0)
    return (avg_overallocation / 10) * (1 + duration_factor)


@dataclass(frozen=True)
class OverallocatedMonth:
    month: Month
    total_utilization: float
    effective_capacity: float
    overallocation_amount: float
    projects: Tuple[ActiveAllocation, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "month": self.month.label,
            "totalUtilization": self.total_utilization,
            "effectiveCapacity": self.effective_capacity,
            "overallocated": True,
            "overallocationAmount": self.overallocation_amount,
            "projects": [
                {"id": p.project_id, "name": p.project_name, "utilization": p.utilization}
                for p in self.projects
            ],
        }


@dataclass(frozen=True)
class ResourceBottleneck:
    resource: Resource
    overallocated_months: Tuple[OverallocatedMonth, ...]
    severity: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "resourceId": self.resource.id,
            "name": self.resource.name,
            "role": self.resource.role_label,
            "overallocatedMonths": [m.to_dict() for m in self.overallocated_months],
            "isBottleneck": True,
            "bottleneckSeverity": self.severity,
        }


@dataclass(frozen=True)
class RoleMonth:
    month: Month
    total_utilization: float
    total_capacity: float
    overallocation_amount: float
    utilization_rate: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "month": self.month.label,
            "totalUtilization": self.total_utilization,
            "totalCapacity": self.total_capacity,
            "overallocationAmount": self.overallocation_amount,
            "utilizationRate": self.utilization_rate,
        }


@dataclass(frozen=True)
class RoleBottleneck:
    role: Optional[RoleId]
    overallocated_months: Tuple[RoleMonth, ...]
    severity: float
    resources: Tuple[Resource, ...]

    @property
    def role_label(self) -> str:
        return self.role.label if self.role is not None else UNASSIGNED_ROLE_LABEL

    def to_dict(self) -> Dict[str, object]:
        return {
            "role": self.role_label,
            "overallocatedMonths": [m.to_dict() for m in self.overallocated_months],
            "isBottleneck": True,
            "bottleneckSeverity": self.severity,
            "resources": [{"id": r.id, "name": r.name} for r in self.resources],
        }


@dataclass(frozen=True)
class ProjectMonth:
    month: Month
    resource_count: int
    total_utilization: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "month": self.month.label,
            "resourceCount": self.resource_count,
            "totalUtilization": self.total_utilization,
        }


@dataclass(frozen=True)
class ProjectBottleneck:
    project_id: str
    project_name: str
    critical_months: Tuple[ProjectMonth, ...]
    risk: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "projectId": self.project_id,
            "projectName": self.project_name,
            "criticalMonths": [m.to_dict() for m in self.critical_months],
            "isBottleneck": bool(self.critical_months),
            "bottleneckRisk": self.risk,
        }


def detect_resource_bottlenecks(forecasts: Iterable[ResourceForecast]) -> List[ResourceBottleneck]:
    bottlenecks: List[ResourceBottleneck] = []
    for forecast in forecasts:
        months = tuple(
            OverallocatedMonth(
                month=entry.month,
                total_utilization=entry.total_utilization,
                effective_capacity=entry.effective_capacity,
                overallocation_amount=max(0, entry.total_utilization - entry.effective_capacity),
                projects=entry.allocations,
            )
            for entry in forecast.months
            if entry.overallocated
        )
        if not months:
            continue
        bottlenecks.append(
            ResourceBottleneck(
                resource=forecast.resource,
                overallocated_months=months,
                severity=bottleneck_severity([m.overallocation_amount for m in months]),
            )
        )
    bottlenecks.sort(key=lambda b: b.severity, reverse=True)
    return bottlenecks


def detect_role_bottlenecks(
    forecasts: Sequence[ResourceForecast],
    months: Sequence[Month],
) -> List[RoleBottleneck]:
    # Roleless resources pool under None so they never merge with a real role.
    by_role: "OrderedDict[Optional[RoleId], List[ResourceForecast]]" = OrderedDict()
    for forecast in forecasts:
        by_role.setdefault(forecast.resource.role, []).append(forecast)

    bottlenecks: List[RoleBottleneck] = []
    for role, members in by_role.items():
        overallocated: List[RoleMonth] = []
        for idx, month in enumerate(months):
            utilization = sum(f.months[idx].total_utilization for f in members)
            capacity = sum(f.months[idx].effective_capacity for f in members)
            if utilization > capacity:
                overallocated.append(
                    RoleMonth(
                        month=month,
                        total_utilization=utilization,
                        total_capacity=capacity,
                        overallocation_amount=utilization - capacity,
                        utilization_rate=utilization / capacity * 100 if capacity > 0 else 0.0,
                    )
                )
        if not overallocated:
            continue
        bottlenecks.append(
            RoleBottleneck(
                role=role,
                overallocated_months=tuple(overallocated),
                severity=bottleneck_severity([m.overallocation_amount for m in overallocated]),
                resources=tuple(f.resource for f in members),
            )
        )
    bottlenecks.sort(key=lambda b: b.severity, reverse=True)
    return bottlenecks


def project_bottleneck_risk(critical_months: Sequence[ProjectMonth]) -> str:
    if not critical_months:
        return "none"
    max_resource_count = max(m.resource_count for m in critical_months)
    max_utilization = max(m.total_utilization for m in critical_months)
    if max_resource_count >= 5 or max_utilization >= 400:
        return "high"
    if max_resource_count >= 4 or max_utilization >= 300:
        return "medium"
    return "low"


def detect_project_bottlenecks(
    allocations: Iterable[Allocation],
    months: Sequence[Month],
    sample_day: int = DEFAULT_SAMPLE_DAY,
) -> List[ProjectBottleneck]:
    by_project: "OrderedDict[str, List[Allocation]]" = OrderedDict()
    names: Dict[str, str] = {}
    for allocation in allocations:
        by_project.setdefault(allocation.project_id, []).append(allocation)
        names.setdefault(allocation.project_id, allocation.project_name)

    bottlenecks: List[ProjectBottleneck] = []
    for project_id, project_allocations in by_project.items():
        critical: List[ProjectMonth] = []
        for month in months:
            active = [a for a in project_allocations if is_active_in_month(a, month, sample_day)]
            resource_count = len({a.resource_id for a in active})
            if resource_count >= PROJECT_CRITICAL_RESOURCE_COUNT:
                critical.append(
                    ProjectMonth(
                        month=month,
                        resource_count=resource_count,
                        total_utilization=sum(a.utilization for a in active),
                    )
                )
        if not critical:
            continue
        critical.sort(key=lambda m: m.resource_count, reverse=True)
        bottlenecks.append(
            ProjectBottleneck(
                project_id=project_id,
                project_name=names[project_id],
                critical_months=tuple(critical),
                risk=project_bottleneck_risk(critical),
            )
        )
    bottlenecks.sort(key=lambda b: RISK_ORDER[b.risk], reverse=True)
    return bottlenecks
