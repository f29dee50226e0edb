"""Route normalization for page values found in metadata and events."""
import re
from typing import Any, Optional
from urllib.parse import urlsplit

_PREFIX_RE = re.compile(r"^(?:route|page|path|url|location|screen)\s*[:=]\s*", re.IGNORECASE)
_ABSOLUTE_RE = re.compile(r"^(?:https?:)?//", re.IGNORECASE)


def _clean_path(path: str) -> str:
    if not path or path == "/":
        return "/"
    return path.rstrip("/") or "/"


def _path_from_absolute(value: str) -> Optional[str]:
    try:
        parts = urlsplit(value)
    except ValueError:
        return None
    if parts.fragment.startswith("/"):
        return parts.fragment.split("?", 1)[0]
    if not parts.netloc:
        # "///x" and "https:///x" carry no host but still name a path
        return parts.path if parts.path.startswith("/") else None
    return parts.path or "/"


def _path_from_relative(value: str) -> Optional[str]:
    hash_route = value.find("#/")
    if hash_route != -1:
        value = value[hash_route + 1:]
    value = value.split("?", 1)[0].split("#", 1)[0]
    if value.startswith("/"):
        return value
    # Heuristic: a label such as "Save/Cancel" also yields a path here
    slash = value.find("/")
    if slash == -1:
        return None
    return value[slash:]


def normalize_page_value(value: Any) -> Optional[str]:
    """
    Turn a raw URL, route or target string into a normalized page path.

    Examples::

        normalize_page_value("https://example.com/products/")  # "/products"
        normalize_page_value("/cart?ref=x#foo")                 # "/cart"
        normalize_page_value("page:/pricing")                   # "/pricing"
        normalize_page_value("   ")                             # None

    Returns:
        A path that starts with "/" and has no trailing slash (except "/"),
        or None when the value does not look like a page.
    """
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    if not candidate:
        return None

    candidate = _PREFIX_RE.sub("", candidate, count=1).strip()
    if not candidate:
        return None

    if _ABSOLUTE_RE.match(candidate):
        path = _path_from_absolute(candidate)
    else:
        path = _path_from_relative(candidate)

    if path is None:
        return None
    return _clean_path(path)
