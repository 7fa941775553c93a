# shop_admin/utils.py
from __future__ import annotations
import re
import unicodedata


def slugify(value: str) -> str:
    """'Vélo Route 28"' -> 'velo-route-28'"""
    s = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    s = re.sub(r"[^a-z0-9]+", "-", s.lower())
    return s.strip("-")


def page_window(page: int, limit: int) -> int:
    """Offset for a 1-based page."""
    return (max(page, 1) - 1) * limit
