"""
Keyword tag classification.
"""

from __future__ import annotations

from typing import Mapping, Sequence


def classify(
    title: str | None,
    description: str | None,
    rules: Mapping[str, Sequence[str]],
) -> list[str]:
    """Derive tags for a tender.

    A tag applies when any of its keywords occurs, case-insensitively, in
    the title or description. Tags come back in rule declaration order.

    Args:
        title: Tender title
        description: Tender description
        rules: Tag name to keyword list

    Returns:
        Matching tag names, each at most once
    """
    text = f"{title or ''} {description or ''}".lower()
    tags = []
    for tag, keywords in rules.items():
        if any(keyword and keyword.lower() in text for keyword in keywords):
            tags.append(tag)
    return tags
