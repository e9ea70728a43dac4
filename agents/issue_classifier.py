from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from models.schemas import IssueCategory, TravelIssue


@dataclass(frozen=True)
class IssueRule:
    category: IssueCategory
    triggers: Tuple[str, ...]
    severity: int
    description: str


# Row order is output order.
ISSUE_RULES: Tuple[IssueRule, ...] = (
    IssueRule(IssueCategory.DELAY, ("delay", "late", "wait"), 3, "Travel delays experienced"),
    IssueRule(IssueCategory.COST, ("expensive", "cost", "price"), 3, "Cost-related concerns"),
    IssueRule(IssueCategory.COMFORT, ("uncomfortable", "seat", "cramped"), 2, "Comfort issues during travel"),
    IssueRule(IssueCategory.NAVIGATION, ("lost", "direction", "navigation"), 3, "Navigation difficulties"),
    IssueRule(IssueCategory.SAFETY, ("unsafe", "security", "danger"), 4, "Safety concerns"),
)

FALLBACK_RULE = IssueRule(IssueCategory.OTHER, (), 2, "General travel concerns")


def _issue(rule: IssueRule) -> TravelIssue:
    return TravelIssue(category=rule.category, severity=rule.severity, description=rule.description)


def classify_issues(text: str) -> List[TravelIssue]:
    """Map free text to travel issues by substring match.

    Categories are checked independently, so one sentence can hit several.
    Severity is a fixed per-category weight. When nothing matches the result
    is a single ``other`` issue.
    """
    lower = (text or "").lower()
    issues = [_issue(rule) for rule in ISSUE_RULES if any(t in lower for t in rule.triggers)]
    if not issues:
        issues.append(_issue(FALLBACK_RULE))
    return issues
