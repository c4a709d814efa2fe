"""Slug helpers for catalog entities.

Usage:
    from libs.common.slug import slugify

    slugify("Home & Kitchen")  # "home-kitchen"
"""

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to one hyphen, strip edge hyphens."""
    return _NON_ALNUM.sub("-", value.lower()).strip("-")
