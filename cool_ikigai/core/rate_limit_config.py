"""
Rate limiting configuration for the Cool Ikigai API
"""

from fastapi import Request
from slowapi.util import get_remote_address


def get_real_ip(request: Request) -> str:
    """
    Get the real IP address, considering proxy headers.
    The API runs behind a load balancer in production.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


# Rate limit configurations per client tier
RATE_LIMIT_TIERS = {
    "default": {
        "session_create": "20/minute",  # New conversations
        "message": "60/minute",         # Utterances, including free chat
        "audio": "240/minute",          # Audio polling and playback signals
        "results": "10/minute",         # Save / email / WhatsApp / coaching
    },
    "trusted": {
        "session_create": "100/minute",
        "message": "300/minute",
        "audio": "1000/minute",
        "results": "50/minute",
    }
}

RATE_LIMIT_MESSAGES = {
    "default": "Trop de requêtes. Merci de patienter un instant avant de réessayer.",
    "session_create": "Trop de nouvelles conversations. Merci de patienter une minute.",
    "message": "Trop de messages envoyés. Merci de ralentir un peu.",
    "results": "Cette opération est limitée. Merci de réessayer plus tard.",
}


def get_rate_limit_message(endpoint: str) -> str:
    """Get custom error message for rate limited endpoint"""
    return RATE_LIMIT_MESSAGES.get(endpoint, RATE_LIMIT_MESSAGES["default"])
