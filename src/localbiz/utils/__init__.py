"""Shared helpers for rate limiting, retries and project names."""

from .rate_limiter import TokenBucket
from .retry import retry_with_backoff
from .text import sanitize_project_name

__all__ = [
    "TokenBucket",
    "retry_with_backoff",
    "sanitize_project_name",
]
