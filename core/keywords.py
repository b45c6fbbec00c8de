"""Keyword tagging and complaint classification.

Buckets are evaluated top to bottom and the first one with a matching keyword
wins, so the declaration order below is the tie-break policy.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

COMPLAINT_BUCKETS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("snaps_security", ("snap", "snapd", "store", "malware", "security", "sandbox")),
    ("updates_breakage", ("update", "upgrade", "broke", "broken", "dependency", "fail")),
    ("performance", ("slow", "performance", "lag", "cpu", "memory", "ram", "freeze")),
    ("enterprise_support", ("enterprise", "support", "sla", "compliance", "lts")),
    ("packaging_dev_workflow", ("apt", "packaging", "build", "dependency", "toolchain", "ppa")),
)

COMPLAINT_CATEGORIES: tuple[str, ...] = tuple(name for name, _ in COMPLAINT_BUCKETS)


def matches_keyword(text: str, keyword: str) -> bool:
    return keyword.lower() in text.lower()


def matches_any(text: str, keywords: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(k.lower() in lowered for k in keywords)


def categorize_complaint(
    text: str,
    buckets: Sequence[tuple[str, Sequence[str]]] = COMPLAINT_BUCKETS,
) -> str | None:
    lowered = text.lower()
    for category, keywords in buckets:
        if any(k in lowered for k in keywords):
            return category
    return None


def empty_category_counts() -> dict[str, int]:
    return {name: 0 for name in COMPLAINT_CATEGORIES}


def count_categories(texts: Iterable[str]) -> dict[str, int]:
    counts = empty_category_counts()
    for text in texts:
        category = categorize_complaint(text)
        if category:
            counts[category] += 1
    return counts
