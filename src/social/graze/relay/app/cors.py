from typing import Dict, Optional


def get_cors_headers(origin_value: Optional[str]) -> Dict[str, str]:
    """Return CORS headers for a response.

    Every origin is allowed. No endpoint uses cookies or other credentials, so the
    wildcard is safe and ``Access-Control-Allow-Credentials`` is never sent.
    """
    headers = {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": (
            "Keep-Alive, User-Agent, X-Requested-With, "
            "If-Modified-Since, Cache-Control, Content-Type, "
            "Authorization"
        ),
    }

    if origin_value:
        headers["Vary"] = "Origin"

    return headers
