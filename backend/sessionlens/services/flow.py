"""User-flow aggregation: page sequences per session and the transition graph."""
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sessionlens.constants import EXIT_PAGE
from sessionlens.schemas.analytics import FlowNode, FlowTransition
from sessionlens.services.merge import sort_events
from sessionlens.services.routes import normalize_page_value
from sessionlens.utils.serialization import round_half_up

# Event fields that may carry a page, in priority order
PAGE_CANDIDATE_FIELDS = ("target", "url", "href", "location")


def extract_event_page(event: Mapping[str, Any]) -> Optional[str]:
    """Return the first candidate field of an event that normalizes to a page."""
    for field in PAGE_CANDIDATE_FIELDS:
        page = normalize_page_value(event.get(field))
        if page is not None:
            return page
    return None


def extract_page_sequence(record) -> List[str]:
    """
    Ordered pages visited during one session.

    Starts from the metadata URL, then walks the events in timestamp order.
    A page is appended only when it differs from the one before it.
    """
    pages: List[str] = []
    metadata = record.session_metadata or {}
    initial = normalize_page_value(metadata.get("url"))
    if initial is not None:
        pages.append(initial)

    for event in sort_events(record.events or []):
        page = extract_event_page(event)
        if page is None:
            continue
        if pages and pages[-1] == page:
            continue
        pages.append(page)
    return pages


def build_user_flow(records: Iterable[Any]) -> List[FlowNode]:
    """
    Build the page transition graph across all sessions.

    Each session counts once towards ``users`` of every page it visited.
    Every page in a sequence transitions to the following page, the last
    one to ``exit``.
    """
    users: Dict[str, int] = {}
    transitions: Dict[str, Dict[str, int]] = {}
    totals: Dict[str, int] = {}

    for record in records:
        sequence = extract_page_sequence(record)
        if not sequence:
            continue

        for page in dict.fromkeys(sequence):
            users[page] = users.get(page, 0) + 1

        for index, current in enumerate(sequence):
            target = sequence[index + 1] if index + 1 < len(sequence) else EXIT_PAGE
            outbound = transitions.setdefault(current, {})
            outbound[target] = outbound.get(target, 0) + 1
            totals[current] = totals.get(current, 0) + 1

    nodes = []
    for page, outbound in transitions.items():
        total = totals[page]
        next_pages = [
            FlowTransition(target=target, percent=round_half_up(count / total * 100))
            for target, count in outbound.items()
        ]
        next_pages.sort(key=lambda transition: transition.percent, reverse=True)
        nodes.append(FlowNode(page=page, users=users.get(page, 0), next=next_pages))

    nodes.sort(key=lambda node: node.users, reverse=True)
    return nodes
