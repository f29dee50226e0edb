"""URL utility functions."""
import urllib.parse


def decode_session_id(session_id: str) -> str:
    """
    Decode a URL-encoded session ID.

    Args:
        session_id: Potentially URL-encoded session ID

    Returns:
        Decoded session ID
    """
    return urllib.parse.unquote(session_id)
