from __future__ import annotations

from typing import Dict, Iterable, List

from models.schemas import IssueCategory, TravelIssue


DISPLAY_LIMIT = 3

ADVICE: Dict[IssueCategory, List[str]] = {
    IssueCategory.DELAY: [
        "Consider booking flights with longer layovers to account for potential delays",
        "Use real-time transit apps to stay updated on schedule changes",
    ],
    IssueCategory.COST: [
        "Book in advance for better prices",
        "Consider alternative travel dates for lower costs",
        "Look into travel rewards programs and discount cards",
    ],
    IssueCategory.COMFORT: [
        "Consider upgrading your seat for longer journeys",
        "Bring comfort items like neck pillows and blankets",
    ],
    IssueCategory.NAVIGATION: [
        "Download offline maps before traveling",
        "Research your route in advance and save important locations",
    ],
    IssueCategory.SAFETY: [
        "Research destination safety and travel advisories",
        "Share your itinerary with trusted contacts",
    ],
    IssueCategory.OTHER: [
        "Plan ahead and research your destination thoroughly",
    ],
}


def generate_suggestions(issues: Iterable[TravelIssue]) -> List[str]:
    seen = set()
    out: List[str] = []
    for issue in issues:
        for tip in ADVICE.get(issue.category, ADVICE[IssueCategory.OTHER]):
            if tip in seen:
                continue
            seen.add(tip)
            out.append(tip)
    return out


def top_suggestions(issues: Iterable[TravelIssue], limit: int = DISPLAY_LIMIT) -> List[str]:
    return generate_suggestions(issues)[: max(0, min(limit, DISPLAY_LIMIT))]
