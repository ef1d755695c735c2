"""
Workload balancing recommendations.

Pairs overallocated resources with underallocated ones that share a skill or a
role and still have headroom in every month where the overallocated resource
is over the limit, then proposes moving small allocations across:
- Critical months are visited from the largest overallocation down
- Within a month, the smallest transferable allocations go first
- Candidates are tried in compatibility order
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .models import ActiveAllocation, ForecastConfig, Month, Resource, ResourceForecast
from .narratives import balancing_summary_text

logger = logging.getLogger(__name__)

OVERALLOCATION_LIMIT = 100.0
SKILL_WEIGHT = 60.0
ROLE_WEIGHT = 40.0


@dataclass(frozen=True)
class CriticalMonth:
    """Month in which an overallocated resource exceeds the overallocation limit."""
    month: Month
    utilization: float
    overallocation_amount: float
    allocations: Tuple[ActiveAllocation, ...]

    def to_dict(self) -> Dict[str, object]:
        return {
            "month": self.month.label,
            "utilization": self.utilization,
            "overallocationAmount": self.overallocation_amount,
            "allocations": [_allocation_to_dict(a) for a in self.allocations],
        }


@dataclass(frozen=True)
class TransferCandidate:
    """Underallocated resource able to take work from one overallocated resource."""
    forecast: ResourceForecast
    compatibility_score: float
    skills_match_count: int
    role_match: bool
    available_capacity: Dict[str, float]  # month label -> headroom below the target cap


@dataclass(frozen=True)
class BalancingRecommendation:
    project_id: str
    project_name: str
    utilization: float
    month: Month
    from_resource: Resource
    to_resource: Resource
    compatibility_score: float
    skills_match: bool
    role_match: bool

    def to_dict(self) -> Dict[str, object]:
        return {
            "project": {"id": self.project_id, "name": self.project_name},
            "utilization": self.utilization,
            "month": self.month.label,
            "fromResource": {"id": self.from_resource.id, "name": self.from_resource.name},
            "toResource": self.to_resource.ref(),
            "compatibilityScore": self.compatibility_score,
            "skillsMatch": self.skills_match,
            "roleMatch": self.role_match,
        }


@dataclass(frozen=True)
class BalancingGroup:
    overallocated: ResourceForecast
    critical_months: Tuple[CriticalMonth, ...]
    recommendations: Tuple[BalancingRecommendation, ...]

    def to_dict(self) -> Dict[str, object]:
        return {
            "overallocatedResource": self.overallocated.resource.ref(),
            "criticalMonths": [m.to_dict() for m in self.critical_months],
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


@dataclass(frozen=True)
class BalancingSummary:
    overallocated_count: int
    underallocated_count: int
    recommendation_count: int
    opportunity_level: str
    summary_text: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "overallocatedCount": self.overallocated_count,
            "underallocatedCount": self.underallocated_count,
            "recommendationCount": self.recommendation_count,
            "balancingOpportunityLevel": self.opportunity_level,
            "summaryText": self.summary_text,
        }


@dataclass(frozen=True)
class WorkloadBalance:
    overallocated: Tuple[ResourceForecast, ...]
    underallocated: Tuple[ResourceForecast, ...]
    groups: Tuple[BalancingGroup, ...]
    summary: BalancingSummary

    def to_dict(self) -> Dict[str, object]:
        return {
            "overallocatedResources": [_resource_entry(f) for f in self.overallocated],
            "underallocatedResources": [_resource_entry(f) for f in self.underallocated],
            "balancingRecommendations": [g.to_dict() for g in self.groups],
            "summary": self.summary.to_dict(),
        }


def _allocation_to_dict(allocation: ActiveAllocation) -> Dict[str, object]:
    return {
        "projectId": allocation.project_id,
        "projectName": allocation.project_name,
        "utilization": allocation.utilization,
    }


def _resource_entry(forecast: ResourceForecast) -> Dict[str, object]:
    return {
        "id": forecast.resource.id,
        "name": forecast.resource.name,
        "role": forecast.resource.role_label,
        "skills": forecast.resource.sorted_skills(),
        "avgUtilization": forecast.avg_utilization,
        "monthlyUtilization": [
            {
                "month": entry.label,
                "utilization": entry.total_utilization,
                "allocations": [_allocation_to_dict(a) for a in entry.allocations],
            }
            for entry in forecast.months
        ],
    }


def compatibility_score(overallocated: Resource, candidate: Resource) -> float:
    skill_score = 0.0
    if overallocated.skills:
        matching = len(candidate.matching_skills(overallocated))
        skill_score = matching / len(overallocated.skills) * SKILL_WEIGHT
    role_score = ROLE_WEIGHT if candidate.shares_role(overallocated) else 0.0
    return skill_score + role_score


def classify_resources(
    forecasts: Sequence[ResourceForecast],
    config: ForecastConfig,
) -> Tuple[List[ResourceForecast], List[ResourceForecast]]:
    overallocated: List[ResourceForecast] = []
    underallocated: List[ResourceForecast] = []
    threshold = config.underallocation_threshold
    for forecast in forecasts:
        series = forecast.utilization_series()
        if any(value > OVERALLOCATION_LIMIT for value in series):
            overallocated.append(forecast)
        elif forecast.avg_utilization < threshold and all(value < threshold for value in series):
            underallocated.append(forecast)
    return overallocated, underallocated


def critical_months(forecast: ResourceForecast) -> List[CriticalMonth]:
    months = [
        CriticalMonth(
            month=entry.month,
            utilization=entry.total_utilization,
            overallocation_amount=entry.total_utilization - OVERALLOCATION_LIMIT,
            allocations=entry.allocations,
        )
        for entry in forecast.months
        if entry.total_utilization > OVERALLOCATION_LIMIT
    ]
    months.sort(key=lambda m: m.overallocation_amount, reverse=True)
    return months


def _utilization_in(forecast: ResourceForecast, label: str) -> float:
    entry = forecast.month_by_label(label)
    return entry.total_utilization if entry is not None else 0.0


def rank_candidates(
    overallocated: ResourceForecast,
    criticals: Sequence[CriticalMonth],
    underallocated: Sequence[ResourceForecast],
    config: ForecastConfig,
) -> List[TransferCandidate]:
    source = overallocated.resource
    cap = config.transfer_target_cap
    candidates: List[TransferCandidate] = []
    for forecast in underallocated:
        candidate = forecast.resource
        matching = candidate.matching_skills(source)
        role_match = candidate.shares_role(source)
        if not (matching or role_match):
            continue
        if not all(_utilization_in(forecast, c.month.label) < cap for c in criticals):
            continue
        candidates.append(
            TransferCandidate(
                forecast=forecast,
                compatibility_score=compatibility_score(source, candidate),
                skills_match_count=len(matching),
                role_match=role_match,
                available_capacity={
                    c.month.label: max(0.0, cap - _utilization_in(forecast, c.month.label))
                    for c in criticals
                },
            )
        )
    candidates.sort(key=lambda c: c.compatibility_score, reverse=True)
    return candidates


def recommend_transfers(
    overallocated: ResourceForecast,
    criticals: Sequence[CriticalMonth],
    candidates: Sequence[TransferCandidate],
    config: ForecastConfig,
) -> List[BalancingRecommendation]:
    recommendations: List[BalancingRecommendation] = []
    for critical in criticals:
        transferable = sorted(
            (a for a in critical.allocations if a.utilization <= config.transferable_allocation_max),
            key=lambda a: a.utilization,
        )
        for allocation in transferable:
            for candidate in candidates:
                available = candidate.available_capacity.get(critical.month.label, 0.0)
                if available >= allocation.utilization:
                    recommendations.append(
                        BalancingRecommendation(
                            project_id=allocation.project_id,
                            project_name=allocation.project_name,
                            utilization=allocation.utilization,
                            month=critical.month,
                            from_resource=overallocated.resource,
                            to_resource=candidate.forecast.resource,
                            compatibility_score=candidate.compatibility_score,
                            skills_match=candidate.skills_match_count > 0,
                            role_match=candidate.role_match,
                        )
                    )
    # Emission order is kept; the cap is not a top-N by score.
    return recommendations[: config.max_recommendations_per_resource]


def balancing_opportunity_level(
    overallocated_count: int,
    underallocated_count: int,
    recommendation_count: int,
) -> str:
    if overallocated_count == 0 or underallocated_count == 0:
        return "none"
    ratio = recommendation_count / overallocated_count
    if ratio > 0.7:
        return "high"
    if ratio > 0.3:
        return "medium"
    return "low"


def balance_workload(forecasts: Sequence[ResourceForecast], config: ForecastConfig) -> WorkloadBalance:
    overallocated, underallocated = classify_resources(forecasts, config)
    groups: List[BalancingGroup] = []
    for forecast in overallocated:
        criticals = critical_months(forecast)
        if not criticals:
            continue
        candidates = rank_candidates(forecast, criticals, underallocated, config)
        recommendations = recommend_transfers(forecast, criticals, candidates, config)
        logger.debug(
            "%s: %d critical months, %d candidates, %d recommendations",
            forecast.resource.name,
            len(criticals),
            len(candidates),
            len(recommendations),
        )
        if recommendations:
            groups.append(
                BalancingGroup(
                    overallocated=forecast,
                    critical_months=tuple(criticals),
                    recommendations=tuple(recommendations),
                )
            )
    level = balancing_opportunity_level(len(overallocated), len(underallocated), len(groups))
    summary = BalancingSummary(
        overallocated_count=len(overallocated),
        underallocated_count=len(underallocated),
        recommendation_count=len(groups),
        opportunity_level=level,
        summary_text=balancing_summary_text(level, len(overallocated), len(underallocated), len(groups)),
    )
    return WorkloadBalance(
        overallocated=tuple(overallocated),
        underallocated=tuple(underallocated),
        groups=tuple(groups),
        summary=summary,
    )
