"""Compliance scoring: control results -> weighted score, risk level and remediation priority.

Pure functions, no I/O. Results are any objects exposing a ``status`` attribute.
An empty or fully not-applicable result set scores 0 and reads as "High" risk:
no data must never look like compliance.
"""

from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass, field

from models.control_result import IMPLEMENTED, NOT_APPLICABLE, NOT_IMPLEMENTED, PARTIALLY_IMPLEMENTED

LOW_RISK_THRESHOLD = 80
MEDIUM_RISK_THRESHOLD = 50


@dataclass
class StatusCounts:
    implemented: int = 0
    partially_implemented: int = 0
    not_implemented: int = 0
    not_applicable: int = 0

    @property
    def total(self) -> int:
        return self.implemented + self.partially_implemented + self.not_implemented + self.not_applicable

    @property
    def applicable(self) -> int:
        return self.total - self.not_applicable


@dataclass
class DomainScore:
    domain_id: Hashable
    score: float
    risk_level: str
    counts: StatusCounts = field(default_factory=StatusCounts)


def count_statuses(results: Iterable) -> StatusCounts:
    counts = StatusCounts()
    for r in results:
        if r.status == IMPLEMENTED:
            counts.implemented += 1
        elif r.status == PARTIALLY_IMPLEMENTED:
            counts.partially_implemented += 1
        elif r.status == NOT_APPLICABLE:
            counts.not_applicable += 1
        else:
            # Unknown statuses count against compliance
            counts.not_implemented += 1
    return counts


def score_from_counts(counts: StatusCounts) -> float:
    if counts.applicable == 0:
        return 0.0
    return 100 * (counts.implemented + 0.5 * counts.partially_implemented) / counts.applicable


def compliance_score(results: Iterable) -> float:
    """Weighted compliance percentage; implemented = 1, partial = 0.5, not_applicable excluded. Not rounded."""
    return score_from_counts(count_statuses(results))


def risk_level(score: float) -> str:
    if score >= LOW_RISK_THRESHOLD:
        return "Low"
    if score >= MEDIUM_RISK_THRESHOLD:
        return "Medium"
    return "High"


def priority_for_maturity(maturity_level: int | None) -> str:
    """Remediation priority from a control's static maturity level."""
    if maturity_level is not None and maturity_level >= 3:
        return "high"
    if maturity_level == 1:
        return "low"
    return "medium"


def needs_remediation(status: str) -> bool:
    return status in (NOT_IMPLEMENTED, PARTIALLY_IMPLEMENTED)


def aggregate_by_domain(
    results: Iterable,
    domain_of: Callable[[object], Hashable | None],
    domain_ids: Sequence[Hashable],
) -> dict[Hashable, DomainScore]:
    """Score each domain independently.

    ``domain_of`` maps a result to its owning domain id (or None when the control is
    unknown; such results only count towards the overall score). Every id in
    ``domain_ids`` gets an entry, in that order, even when it has no results.
    """
    partitions: dict[Hashable, list] = {domain_id: [] for domain_id in domain_ids}
    for r in results:
        domain_id = domain_of(r)
        if domain_id in partitions:
            partitions[domain_id].append(r)

    scores = {}
    for domain_id, domain_results in partitions.items():
        counts = count_statuses(domain_results)
        score = score_from_counts(counts)
        scores[domain_id] = DomainScore(domain_id=domain_id, score=score, risk_level=risk_level(score), counts=counts)
    return scores
