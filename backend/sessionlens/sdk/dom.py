"""Minimal element tree used to label click and hover targets."""
from dataclasses import dataclass, field
from typing import Dict, Optional

RECORDER_LABEL_ATTRIBUTE = "data-recorder-label"
INTERACTIVE_TAGS = ("a", "button", "input", "textarea")


@dataclass
class Element:
    """An element of the monitored page as reported by the host."""
    tag: str
    id: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    parent: Optional["Element"] = None


def resolve_target_label(element: Optional[Element]) -> Optional[str]:
    """
    Label for the element an interaction landed on.

    Walks up from ``element`` to the nearest ancestor (itself included) that
    carries an explicit recorder label or is interactive. A recorder label is
    returned verbatim; otherwise the tag name, with ``#id`` when present.

    Returns:
        The label, or None when no ancestor qualifies
    """
    current = element
    while current is not None:
        if RECORDER_LABEL_ATTRIBUTE in current.attributes:
            return current.attributes[RECORDER_LABEL_ATTRIBUTE]
        tag = current.tag.lower()
        if tag in INTERACTIVE_TAGS:
            return f"{tag}#{current.id}" if current.id else tag
        current = current.parent
    return None
