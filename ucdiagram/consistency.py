"""
Diagram consistency checking - Score a use-case diagram and suggest fixes.

Each rule is a plain function taking a document and returning the issues it
finds. Rules never mutate the document and never raise on malformed input:
dangling connections, duplicate ids and empty collections just produce more
issues. `check_diagram` runs the registered rules in order, scores the
result and collects deduplicated suggestions.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Optional

from .models import (
    DiagramDocument, Element, ElementKind, ConnectionKind, default_name, utcnow,
)


class IssueSeverity(str, Enum):
    """Severity levels for consistency issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Style advice, may be intentional


class IssueKind(str, Enum):
    """Which check produced an issue."""
    MINIMUM_ACTORS = "minimum_actors"
    MINIMUM_USE_CASES = "minimum_usecases"
    ORPHANED_ELEMENT = "orphaned_element"
    UNCONNECTED_ACTOR = "unconnected_actor"
    UNCONNECTED_USE_CASE = "unconnected_usecase"
    EMPTY_NAME = "empty_name"
    DEFAULT_NAME = "default_name"
    USE_CASE_NAMING = "usecase_naming"
    ELEMENT_OVERLAP = "element_overlap"
    INVALID_CONNECTION = "invalid_connection"
    ACTOR_ASSOCIATION = "invalid_actor_association"
    USE_CASE_ASSOCIATION = "invalid_usecase_association"


SEVERITY_PENALTIES: dict[IssueSeverity, int] = {
    IssueSeverity.ERROR: 20,
    IssueSeverity.WARNING: 10,
    IssueSeverity.INFO: 5,
}

USE_CASE_VERBS = frozenset({
    "create", "add", "delete", "update", "manage", "process", "generate",
    "send", "receive", "view", "edit", "search", "login", "logout",
    "register", "submit", "approve", "reject",
})

# Boxes closer than this count as overlapping
OVERLAP_MARGIN = 10
# Size assumed for elements that never recorded one
FALLBACK_WIDTH = 80
FALLBACK_HEIGHT = 60

EMPTY_DIAGRAM_SUGGESTION = "Start by adding actors and use cases to represent your system"
NO_CONNECTIONS_SUGGESTION = "Connect your elements with associations to show relationships"


@dataclass
class ConsistencyIssue:
    """A single consistency issue found in a diagram."""
    id: str
    kind: IssueKind
    severity: IssueSeverity
    message: str
    related_element_ids: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "relatedElementIds": list(self.related_element_ids),
            "suggestions": list(self.suggestions),
        }


@dataclass
class ConsistencyReport:
    """The scored result of running every rule against one snapshot."""
    score: int
    issues: list[ConsistencyIssue]
    suggestions: list[str]
    computed_at: datetime = field(default_factory=utcnow, compare=False)

    def summary(self) -> dict:
        """Counts by severity."""
        errors = self.count(IssueSeverity.ERROR)
        return {
            "total": len(self.issues),
            "errors": errors,
            "warnings": self.count(IssueSeverity.WARNING),
            "info": self.count(IssueSeverity.INFO),
            "valid": errors == 0,
        }

    def count(self, severity: IssueSeverity) -> int:
        return len([i for i in self.issues if i.severity == severity])

    def passes(self, threshold: int) -> bool:
        """True if the score reaches the caller's submission threshold."""
        return self.score >= threshold

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "issues": [i.to_dict() for i in self.issues],
            "suggestions": list(self.suggestions),
            "computedAt": self.computed_at.isoformat(),
            "summary": self.summary(),
        }


Rule = Callable[[DiagramDocument], list[ConsistencyIssue]]


def _issue(kind: IssueKind, severity: IssueSeverity, message: str,
           subject: Iterable[str] = (), related: Iterable[str] = (),
           suggestions: Iterable[str] = ()) -> ConsistencyIssue:
    """Build an issue whose id is stable for the same diagram content."""
    subject = list(subject)
    return ConsistencyIssue(
        id=f"{kind.value}:{'+'.join(subject) or 'diagram'}",
        kind=kind,
        severity=severity,
        message=message,
        related_element_ids=list(related),
        suggestions=list(suggestions),
    )


def _element_lookup(diagram: DiagramDocument) -> dict[str, Element]:
    lookup: dict[str, Element] = {}
    for element in diagram.elements:
        lookup.setdefault(element.id, element)
    return lookup


def _endpoint_ids(diagram: DiagramDocument) -> set[str]:
    ids: set[str] = set()
    for connection in diagram.connections:
        ids.add(connection.source_id)
        ids.add(connection.target_id)
    return ids


# --- Rules ---

def check_minimum_actors(diagram: DiagramDocument) -> list[ConsistencyIssue]:
    if any(e.kind == ElementKind.ACTOR for e in diagram.elements):
        return []
    return [_issue(
        IssueKind.MINIMUM_ACTORS, IssueSeverity.ERROR,
        "Use case diagram must have at least one actor",
        suggestions=["Add an actor to represent a user or external system"],
    )]


def check_minimum_use_cases(diagram: DiagramDocument) -> list[ConsistencyIssue]:
    if any(e.kind == ElementKind.USE_CASE for e in diagram.elements):
        return []
    return [_issue(
        IssueKind.MINIMUM_USE_CASES, IssueSeverity.ERROR,
        "Use case diagram must have at least one use case",
        suggestions=["Add a use case to represent system functionality"],
    )]


def check_orphaned_elements(diagram: DiagramDocument) -> list[ConsistencyIssue]:
    """Every element should take part in at least one connection."""
    connected = _endpoint_ids(diagram)
    return [
        _issue(
            IssueKind.ORPHANED_ELEMENT, IssueSeverity.WARNING,
            f'{element.kind.value} "{element.name}" is not connected to any other element',
            subject=[element.id], related=[element.id],
            suggestions=[f'Connect "{element.name}" to other elements or remove it if not needed'],
        )
        for element in diagram.elements
        if element.id not in connected
    ]


def check_unconnected_actors(diagram: DiagramDocument) -> list[ConsistencyIssue]:
    # Reported alongside orphaned_element for the same actor
    connected = _endpoint_ids(diagram)
    return [
        _issue(
            IssueKind.UNCONNECTED_ACTOR, IssueSeverity.WARNING,
            f'Actor "{actor.name}" is not connected to any use cases',
            subject=[actor.id], related=[actor.id],
            suggestions=[f'Connect "{actor.name}" to relevant use cases'],
        )
        for actor in diagram.elements
        if actor.kind == ElementKind.ACTOR and actor.id not in connected
    ]


def check_unconnected_use_cases(diagram: DiagramDocument) -> list[ConsistencyIssue]:
    connected = _endpoint_ids(diagram)
    return [
        _issue(
            IssueKind.UNCONNECTED_USE_CASE, IssueSeverity.WARNING,
            f'Use case "{use_case.name}" is not connected to any actors',
            subject=[use_case.id], related=[use_case.id],
            suggestions=[f'Connect "{use_case.name}" to relevant actors'],
        )
        for use_case in diagram.elements
        if use_case.kind == ElementKind.USE_CASE and use_case.id not in connected
    ]


def starts_with_verb(name: str) -> bool:
    """True if the first word of a use case name is a known action verb."""
    words = name.lower().split()
    return bool(words) and words[0] in USE_CASE_VERBS


def check_naming_conventions(diagram: DiagramDocument) -> list[ConsistencyIssue]:
    """
    Check element names.

    Checks for:
    - Empty or whitespace-only names - ERROR
    - Names left at the kind's default - WARNING
    - Use case names that don't start with an action verb - INFO
    """
    issues: list[ConsistencyIssue] = []

    for element in diagram.elements:
        kind = element.kind.value

        if not element.name.strip():
            issues.append(_issue(
                IssueKind.EMPTY_NAME, IssueSeverity.ERROR,
                f"{kind} has no name",
                subject=[element.id], related=[element.id],
                suggestions=[f"Provide a descriptive name for the {kind}"],
            ))

        if element.name == default_name(element.kind):
            issues.append(_issue(
                IssueKind.DEFAULT_NAME, IssueSeverity.WARNING,
                f'{kind} uses default name "{element.name}"',
                subject=[element.id], related=[element.id],
                suggestions=[f'Rename "{element.name}" to something more descriptive'],
            ))

        if element.kind == ElementKind.USE_CASE and not starts_with_verb(element.name):
            issues.append(_issue(
                IssueKind.USE_CASE_NAMING, IssueSeverity.INFO,
                f'Use case "{element.name}" should start with a verb',
                subject=[element.id], related=[element.id],
                suggestions=['Consider renaming to start with an action verb '
                             '(e.g., "Create Order", "Process Payment")'],
            ))

    return issues


def _padded_bounds(element: Element) -> tuple[float, float, float, float]:
    width = element.width or FALLBACK_WIDTH
    height = element.height or FALLBACK_HEIGHT
    return (element.x, element.y, element.x + width, element.y + height)


def elements_overlap(first: Element, second: Element, margin: float = OVERLAP_MARGIN) -> bool:
    """True unless the boxes are separated by more than `margin` on some axis."""
    left1, top1, right1, bottom1 = _padded_bounds(first)
    left2, top2, right2, bottom2 = _padded_bounds(second)
    return not (
        right1 + margin < left2
        or right2 + margin < left1
        or bottom1 + margin < top2
        or bottom2 + margin < top1
    )


def check_element_overlap(diagram: DiagramDocument) -> list[ConsistencyIssue]:
    """Pairwise O(n^2) check over all elements."""
    issues: list[ConsistencyIssue] = []
    elements = diagram.elements

    for i, first in enumerate(elements):
        for second in elements[i + 1:]:
            if elements_overlap(first, second):
                issues.append(_issue(
                    IssueKind.ELEMENT_OVERLAP, IssueSeverity.WARNING,
                    f'"{first.name}" and "{second.name}" are overlapping',
                    subject=[first.id, second.id], related=[first.id, second.id],
                    suggestions=["Separate overlapping elements for better visibility"],
                ))

    return issues


def check_association_validity(diagram: DiagramDocument) -> list[ConsistencyIssue]:
    """
    Check each connection's endpoints.

    Checks for:
    - Source or target that doesn't exist - ERROR
    - Association between two actors - WARNING
    - Association between two use cases (include/extend expected) - WARNING
    """
    issues: list[ConsistencyIssue] = []
    lookup = _element_lookup(diagram)

    for connection in diagram.connections:
        source = lookup.get(connection.source_id)
        target = lookup.get(connection.target_id)

        if source is None or target is None:
            issues.append(_issue(
                IssueKind.INVALID_CONNECTION, IssueSeverity.ERROR,
                "Connection references non-existent elements",
                subject=[connection.id],
                suggestions=["Remove invalid connections"],
            ))
            continue

        if connection.kind != ConnectionKind.ASSOCIATION:
            continue

        if source.kind == ElementKind.ACTOR and target.kind == ElementKind.ACTOR:
            issues.append(_issue(
                IssueKind.ACTOR_ASSOCIATION, IssueSeverity.WARNING,
                f'Direct association between actors "{source.name}" and "{target.name}" is unusual',
                subject=[connection.id], related=[source.id, target.id],
                suggestions=["Consider if this actor-to-actor relationship is necessary"],
            ))

        if source.kind == ElementKind.USE_CASE and target.kind == ElementKind.USE_CASE:
            issues.append(_issue(
                IssueKind.USE_CASE_ASSOCIATION, IssueSeverity.WARNING,
                f'Use cases "{source.name}" and "{target.name}" should use include/extend '
                f'instead of association',
                subject=[connection.id], related=[source.id, target.id],
                suggestions=["Use include or extend relationships between use cases"],
            ))

    return issues


# Registration order fixes output order only
DEFAULT_RULES: dict[str, Rule] = {
    "minimum_actors": check_minimum_actors,
    "minimum_use_cases": check_minimum_use_cases,
    "orphaned_elements": check_orphaned_elements,
    "unconnected_actors": check_unconnected_actors,
    "unconnected_use_cases": check_unconnected_use_cases,
    "naming_conventions": check_naming_conventions,
    "element_overlap": check_element_overlap,
    "association_validity": check_association_validity,
}


def calculate_score(issues: Iterable[ConsistencyIssue]) -> int:
    """Start at 100 and subtract a fixed penalty per issue, never below 0."""
    score = 100
    for issue in issues:
        score -= SEVERITY_PENALTIES[issue.severity]
    return max(0, score)


def collect_suggestions(issues: Iterable[ConsistencyIssue], diagram: DiagramDocument) -> list[str]:
    """Issue suggestions plus structural hints, deduplicated in first-seen order."""
    suggestions: list[str] = []
    for issue in issues:
        suggestions.extend(issue.suggestions)

    if not diagram.elements:
        suggestions.append(EMPTY_DIAGRAM_SUGGESTION)

    if not diagram.connections and len(diagram.elements) > 1:
        suggestions.append(NO_CONNECTIONS_SUGGESTION)

    return list(dict.fromkeys(suggestions))


def check_diagram(diagram: DiagramDocument,
                  rules: Optional[dict[str, Rule]] = None) -> ConsistencyReport:
    """
    Run every rule against a diagram and build a report.

    Args:
        diagram: The snapshot to check (left untouched)
        rules: Ordered rule registry, DEFAULT_RULES when omitted

    Returns:
        ConsistencyReport with score, issues in rule order, and suggestions
    """
    if rules is None:
        rules = DEFAULT_RULES

    issues: list[ConsistencyIssue] = []
    for rule in rules.values():
        issues.extend(rule(diagram))

    return ConsistencyReport(
        score=calculate_score(issues),
        issues=issues,
        suggestions=collect_suggestions(issues, diagram),
    )
