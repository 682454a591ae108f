"""Data models for journal entries, search vectors and search results."""

from __future__ import annotations

import random
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

from .errors import UsageError


class Locality(Enum):
    """Storage scope of an entry."""
    PROJECT = "project"
    USER = "user"


# Order here is the order sections are rendered in a document
SECTION_KEYS = (
    "feelings",
    "project_notes",
    "user_context",
    "technical_insights",
    "world_knowledge",
)

SECTION_LOCALITY = {
    "feelings": Locality.USER,
    "project_notes": Locality.PROJECT,
    "user_context": Locality.USER,
    "technical_insights": Locality.USER,
    "world_knowledge": Locality.USER,
}

FREE_TEXT_LOCALITY = Locality.PROJECT

ENTRY_SUFFIX = ".md"
VECTOR_SUFFIX = ".embedding"

DAY_DIR_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
ENTRY_NAME_PATTERN = re.compile(r"^(\d{2})-(\d{2})-(\d{2})-\d{6}$")

_FRONT_MATTER = re.compile(r"^---\n.*?\n---\n", re.DOTALL)
_FRONT_MATTER_TIMESTAMP = re.compile(r"^timestamp:\s*(\d+)\s*$", re.MULTILINE)
_SECTION_HEADER = re.compile(r"^## (.+)$", re.MULTILINE)


def local_now() -> datetime:
    """Get current local time with timezone info."""
    return datetime.now().astimezone()


def timestamp_ms(dt: datetime) -> int:
    """Milliseconds since the epoch."""
    return int(dt.timestamp() * 1000)


def format_date_key(dt: datetime) -> str:
    """Day folder name, YYYY-MM-DD."""
    return dt.strftime("%Y-%m-%d")


def format_time_key(dt: datetime, rng: Optional[random.Random] = None) -> str:
    """File name stem, HH-MM-SS-uuuuuu.

    The last field is the millisecond times 1000 plus a random tie-breaker,
    so writes within the same millisecond usually land on different names.
    """
    tie_breaker = (rng or random).randrange(1000)
    sub_second = (dt.microsecond // 1000) * 1000 + tie_breaker
    return f"{dt.strftime('%H-%M-%S')}-{sub_second:06d}"


def format_iso(dt: datetime) -> str:
    """ISO 8601 in UTC with milliseconds."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def format_title(dt: datetime) -> str:
    """Human display title, e.g. '3:04:05 PM - October 18, 2026'."""
    hour = int(dt.strftime("%I"))
    return f"{hour}:{dt.strftime('%M:%S %p')} - {dt.strftime('%B')} {dt.day}, {dt.year}"


def section_title(key: str) -> str:
    """'user_context' -> 'User Context'."""
    return " ".join(word.capitalize() for word in key.split("_"))


def split_sections(sections: Mapping[str, Optional[str]]) -> dict[Locality, dict[str, str]]:
    """Route populated section values to the locality that stores them.

    Empty and missing values are dropped, so a locality only appears in the
    result when it has something to write.

    Raises:
        UsageError: If an unknown section key is given.
    """
    unknown = [key for key in sections if key not in SECTION_LOCALITY]
    if unknown:
        raise UsageError(f"Unknown section(s): {unknown}. Valid: {list(SECTION_KEYS)}")

    routed: dict[Locality, dict[str, str]] = {}
    for key in SECTION_KEYS:
        value = sections.get(key)
        if not value:
            continue
        routed.setdefault(SECTION_LOCALITY[key], {})[key] = value
    return routed


def render_sections(sections: Mapping[str, Optional[str]]) -> str:
    """Render populated sections as '## Title' blocks separated by blank lines."""
    blocks = [
        f"## {section_title(key)}\n\n{sections[key]}"
        for key in SECTION_KEYS
        if sections.get(key)
    ]
    return "\n\n".join(blocks)


def section_titles(sections: Mapping[str, Optional[str]]) -> list[str]:
    """Titles of the populated sections, in render order."""
    return [section_title(key) for key in SECTION_KEYS if sections.get(key)]


def format_entry_document(body: str, dt: datetime) -> str:
    """Render a content document: front matter envelope then body."""
    return (
        "---\n"
        f'title: "{format_title(dt)}"\n'
        f"date: {format_iso(dt)}\n"
        f"timestamp: {timestamp_ms(dt)}\n"
        "---\n"
        "\n"
        f"{body}\n"
    )


def extract_searchable_text(document: str) -> tuple[str, list[str]]:
    """Strip the front matter and section headers from a content document.

    Returns:
        Tuple of (plain text, section titles found)
    """
    body = _FRONT_MATTER.sub("", document, count=1)
    sections = _SECTION_HEADER.findall(body)
    text = _SECTION_HEADER.sub("", body)
    text = re.sub(r"\n{3,}", "\n\n", text).strip()
    return text, sections


def parse_document_timestamp(document: str) -> Optional[int]:
    """Read the millisecond timestamp from a document's front matter."""
    front = _FRONT_MATTER.match(document)
    if front is None:
        return None
    match = _FRONT_MATTER_TIMESTAMP.search(front.group(0))
    return int(match.group(1)) if match else None


def timestamp_from_path(path: Path) -> Optional[int]:
    """Recover an entry's local time (to the second) from its storage path."""
    name_match = ENTRY_NAME_PATTERN.match(path.stem)
    if name_match is None or not DAY_DIR_PATTERN.match(path.parent.name):
        return None
    hours, minutes, seconds = (int(g) for g in name_match.groups())
    try:
        day = datetime.strptime(path.parent.name, "%Y-%m-%d")
        dt = day.replace(hour=hours, minute=minutes, second=seconds).astimezone()
    except ValueError:
        return None
    return timestamp_ms(dt)


class Scope(Enum):
    """Which localities a search or listing reads."""
    PROJECT = "project"
    USER = "user"
    BOTH = "both"

    @property
    def localities(self) -> tuple[Locality, ...]:
        if self is Scope.PROJECT:
            return (Locality.PROJECT,)
        if self is Scope.USER:
            return (Locality.USER,)
        return (Locality.PROJECT, Locality.USER)


@dataclass(frozen=True)
class DateRange:
    """Inclusive time window; either bound may be open."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def contains(self, timestamp: int) -> bool:
        if self.start is not None and timestamp < timestamp_ms(self.start):
            return False
        if self.end is not None and timestamp > timestamp_ms(self.end):
            return False
        return True


@dataclass
class SearchVector:
    """Derived search representation of one entry, stored beside it."""
    embedding: list[float]
    text: str
    sections: list[str] = field(default_factory=list)
    timestamp: int = 0
    path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "SearchVector":
        """Build from a decoded vector document.

        Raises:
            ValueError: If the document does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise ValueError("Vector document is not an object")
        embedding = data.get("embedding")
        if not isinstance(embedding, list) or not all(
            isinstance(x, (int, float)) and not isinstance(x, bool) for x in embedding
        ):
            raise ValueError("Vector document has no numeric embedding")
        timestamp = data.get("timestamp")
        if not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
            raise ValueError("Vector document has no numeric timestamp")
        sections = data.get("sections") or []
        if not isinstance(sections, list):
            raise ValueError("Vector document sections must be a list")
        return cls(
            embedding=[float(x) for x in embedding],
            text=str(data.get("text", "")),
            sections=[str(s) for s in sections],
            timestamp=int(timestamp),
            path=str(data.get("path", "")),
        )


@dataclass
class SearchResult:
    """One hit from a search or listing. Never persisted."""
    identifier: str
    score: float
    text: str
    sections: list[str]
    timestamp: int
    excerpt: str
    locality: Locality

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "score": self.score,
            "text": self.text,
            "sections": list(self.sections),
            "timestamp": self.timestamp,
            "excerpt": self.excerpt,
            "locality": self.locality.value,
        }
