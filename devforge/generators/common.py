"""Text helpers shared by the document generators."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

STOP_WORDS = frozenset(
    """
    a an and are as at be by can for from has have how in into is it its of on or our should
    so that the their them then there these they this to up was we what when where which who
    will with within without would your you user users system allow allows able via each all
    """.split()
)

ACTION_WORDS = frozenset(
    """
    add create crud delete edit get list manage read remove search show track update view
    support enable provide handle store save send receive display filter sort export import
    """.split()
)

AUTH_TERMS = ("auth", "login", "log in", "sign in", "signin", "signup", "sign up", "password", "register")


def slugify(value: str, default: str = "item") -> str:
    """Convert a string to a slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or default


def pascal_case(value: str) -> str:
    return "".join(word[:1].upper() + word[1:].lower() for word in re.split(r"[^A-Za-z0-9]+", value) if word)


def split_sentences(text: str) -> List[str]:
    """Split text into sentences."""
    raw_sentences = re.split(r"(?<=[.!?])\s+", text.strip())
    return [s.strip() for s in raw_sentences if s.strip()]


def keywords(text: str, limit: Optional[int] = None) -> List[str]:
    """Lower-cased words longer than three characters, stop words removed, in order."""
    seen: List[str] = []
    for word in re.split(r"[^a-z0-9]+", text.lower()):
        if len(word) > 3 and word not in STOP_WORDS and word not in seen:
            seen.append(word)
    return seen[:limit] if limit is not None else seen


def mentions_auth(texts: Iterable[str]) -> bool:
    lowered = " ".join(texts).lower()
    return any(term in lowered for term in AUTH_TERMS)


def pluralize(word: str) -> str:
    if word.endswith("s"):
        return word
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    return word + "s"


def resource_name(requirement: str) -> Optional[str]:
    """The first noun-like word of a requirement, pluralized (``"CRUD todos"`` -> ``"todos"``)."""
    for word in re.split(r"[^a-z0-9]+", requirement.lower()):
        if len(word) < 3 or word in STOP_WORDS or word in ACTION_WORDS:
            continue
        if any(term.replace(" ", "") == word for term in AUTH_TERMS) or word == "authentication":
            return None
        return pluralize(word)
    return None


def title_case(text: str, limit: int = 60) -> str:
    text = " ".join(text.split())
    title = text[:1].upper() + text[1:]
    if len(title) > limit:
        title = title[: limit - 3].rstrip() + "..."
    return title


def bullet_list(items: Iterable[str], empty: str = "- None") -> str:
    lines = [f"- {item}" for item in items]
    return "\n".join(lines) if lines else empty
