"""String helpers for hosting project names."""

import re

MAX_PROJECT_NAME_LENGTH = 50

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def sanitize_project_name(name: str) -> str:
    """Turn a business name into a hosting-safe project slug.

    Lowercases, collapses every run of non-alphanumeric characters into a
    single hyphen, strips leading and trailing hyphens and caps the result
    at 50 characters.

    >>> sanitize_project_name("Joe's Diner & Grill!")
    'joe-s-diner-grill'
    """
    slug = _NON_ALNUM.sub("-", (name or "").lower()).strip("-")
    return slug[:MAX_PROJECT_NAME_LENGTH].strip("-")
