"""
Utility functions for Volna Bot
"""
from typing import Optional

# Discord rejects messages longer than 2000 characters
MESSAGE_LIMIT = 2000


def truncate(text: Optional[str], n: int = 60) -> str:
    """Truncate text to specified length with ellipsis."""
    if not text:
        return ""
    return text if len(text) <= n else text[: n - 1].rstrip() + "…"
