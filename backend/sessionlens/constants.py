"""Application-wide constants."""

# Recorded event types
class EventType:
    """Event type constants."""
    MOUSEMOVE = "mousemove"
    CLICK = "click"
    SCROLL = "scroll"
    HOVER = "hover"
    NAVIGATION = "navigation"


class HoverPhase:
    """Hover phase constants."""
    ENTER = "enter"
    LEAVE = "leave"


class DeviceClass:
    """Device class constants derived from the user agent."""
    DESKTOP = "desktop"
    MOBILE = "mobile"
    TABLET = "tablet"


# Heatmap signal types accepted by the aggregator
HEATMAP_TYPES = (EventType.CLICK, EventType.SCROLL, EventType.HOVER)

# Event fields kept only when the client sent a number
NUMERIC_EVENT_FIELDS = ("x", "y", "scrollX", "scrollY", "button")

# Metadata defaults
UNKNOWN_URL = "Unknown URL"
UNKNOWN_LOCALE = "Unknown locale"
UNKNOWN_BROWSER = "Unknown"
DEFAULT_SCREEN = {"width": 1440, "height": 900}

# Flow graph sentinel for the last page of a session
EXIT_PAGE = "exit"
