"""
CORS headers for token service responses.
"""

from typing import Dict, List, Optional


def is_origin_allowed(origin: Optional[str], allowed_origins: List[str]) -> bool:
    """An empty allow-list allows any origin; a missing origin never matches."""
    if not origin:
        return False
    if not allowed_origins:
        return True
    return origin in allowed_origins


def get_cors_headers(origin: Optional[str], allowed_origins: List[str]) -> Dict[str, str]:
    """Headers to attach to every response, preflight included."""
    headers = {
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Max-Age": "86400",
    }

    if is_origin_allowed(origin, allowed_origins):
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
        headers["Vary"] = "Origin"

    return headers
