from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Sequence

if TYPE_CHECKING:
    from .bottlenecks import ProjectBottleneck, ResourceBottleneck, RoleBottleneck

CRITICAL_SEVERITY = 5.0
SYSTEMIC_BOTTLENECK_COUNT = 3

TEMPLATES: Dict[str, str] = {
    "team.critical": "The team is critically overallocated. Immediate workload balancing is recommended.",
    "team.high": "The team is operating near maximum capacity with minimal flexibility for unexpected work.",
    "team.balanced": "The team is well-utilized but has little buffer for additional work.",
    "team.moderate": "The team has a healthy utilization rate with some capacity for additional work.",
    "team.low": "The team has significant available capacity for additional projects.",
    "trend.increasing": " Utilization is trending upward, which may lead to capacity issues.",
    "trend.decreasing": " Utilization is trending downward, which will create additional capacity.",
    "team.bottleneck_months": " Potential capacity issues identified in: {months}.",
    "bottleneck.critical_resources": (
        "Critical resource bottlenecks detected for: {names}. "
        "Immediate workload rebalancing is recommended."
    ),
    "bottleneck.top_resource": (
        "{name} is the most overallocated resource with critical periods in {months}. "
        "Consider reassigning some of their work."
    ),
    "bottleneck.critical_roles": (
        "Capacity shortage detected for role(s): {roles}. "
        "Consider hiring additional resources or cross-training existing team members."
    ),
    "bottleneck.high_risk_projects": (
        "High bottleneck risk identified for project(s): {projects}. "
        "Consider staggering timelines or reducing concurrent work streams."
    ),
    "bottleneck.systemic": (
        "Multiple resource bottlenecks indicate systemic overallocation. "
        "Review project priorities and consider delaying or reducing scope of lower-priority initiatives."
    ),
    "balance.no_targets": (
        "{overallocated} overallocated resources identified, but no available resources for workload transfer. "
        "Consider hiring additional team members or adjusting project timelines."
    ),
    "balance.idle_only": (
        "{underallocated} resources have low utilization. "
        "Consider bringing in new projects or reassigning them to support other teams."
    ),
    "balance.balanced": "Team workload appears to be well-balanced.",
    "balance.high": (
        "Significant workload balancing opportunities identified. "
        "{recommendations} recommendations available to address {overallocated} overallocated resources."
    ),
    "balance.medium": (
        "Some workload balancing opportunities identified, but skill or role mismatches limit options. "
        "{recommendations} recommendations available for {overallocated} overallocated resources."
    ),
    "balance.low": (
        "Limited workload balancing opportunities identified due to significant skill or role mismatches. "
        "Consider cross-training initiatives to improve future flexibility."
    ),
}


def team_forecast_text(category: str, trend: str, bottleneck_months: Sequence[str]) -> str:
    text = TEMPLATES[f"team.{category}"]
    text += TEMPLATES.get(f"trend.{trend}", "")
    if bottleneck_months:
        text += TEMPLATES["team.bottleneck_months"].format(months=", ".join(bottleneck_months))
    return text


def bottleneck_recommendations(
    resource_bottlenecks: Sequence["ResourceBottleneck"],
    role_bottlenecks: Sequence["RoleBottleneck"],
    project_bottlenecks: Sequence["ProjectBottleneck"],
) -> List[str]:
    """Advice strings; expects each bottleneck list already sorted most severe first."""
    recommendations: List[str] = []
    if resource_bottlenecks:
        critical = [b.resource.name for b in resource_bottlenecks if b.severity > CRITICAL_SEVERITY]
        if critical:
            recommendations.append(TEMPLATES["bottleneck.critical_resources"].format(names=", ".join(critical)))
        top = resource_bottlenecks[0]
        recommendations.append(
            TEMPLATES["bottleneck.top_resource"].format(
                name=top.resource.name,
                months=", ".join(m.month.label for m in top.overallocated_months),
            )
        )
    critical_roles = [b.role_label for b in role_bottlenecks if b.severity > CRITICAL_SEVERITY]
    if critical_roles:
        recommendations.append(TEMPLATES["bottleneck.critical_roles"].format(roles=", ".join(critical_roles)))
    high_risk = [p.project_name for p in project_bottlenecks if p.risk == "high"]
    if high_risk:
        recommendations.append(TEMPLATES["bottleneck.high_risk_projects"].format(projects=", ".join(high_risk)))
    if len(resource_bottlenecks) > SYSTEMIC_BOTTLENECK_COUNT:
        recommendations.append(TEMPLATES["bottleneck.systemic"])
    return recommendations


def balancing_summary_text(
    level: str,
    overallocated_count: int,
    underallocated_count: int,
    recommendation_count: int,
) -> str:
    if level == "none":
        if overallocated_count > 0:
            key = "balance.no_targets"
        elif underallocated_count > 0:
            key = "balance.idle_only"
        else:
            key = "balance.balanced"
    else:
        key = f"balance.{level}"
    return TEMPLATES[key].format(
        overallocated=overallocated_count,
        underallocated=underallocated_count,
        recommendations=recommendation_count,
    )
