"""
Pure path helpers and the repair matcher.

Historical records can point at objects that were later moved or renamed.
When an exact path misses, the locator lists nearby directories and asks
``select_repair_candidate`` to pick the intended object. Nothing here does
I/O, so the matching rules are unit-testable on plain listings.

Matching rules:
- only names with the expected extension are considered
- a filename starting with a UUID is matched on that UUID prefix
  (case-insensitive); otherwise on containment of the original stem
- a name containing the signed marker wins; otherwise the most recently
  updated name wins
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence, Tuple

from ..schemas.records import LogicalRecord
from .backends import ListedObject

UUID_PREFIX_RE = re.compile(
    r"^([0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12})",
    re.IGNORECASE,
)
_RESOLUTIONS_SEGMENT_RE = re.compile(r"(^|/)resolutions(?=/|$)", re.IGNORECASE)
_UNSAFE_FILENAME_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

DEFAULT_EXTENSION = ".pdf"
DEFAULT_SIGNED_MARKER = "-signed"


def normalize_path(path: Optional[str]) -> str:
    """Backslashes to slashes, collapse repeats, strip leading slashes."""
    value = (path or "").replace("\\", "/")
    value = re.sub(r"/+", "/", value)
    return value.lstrip("/")


def normalize_dir(path: Optional[str]) -> str:
    return normalize_path(path).rstrip("/")


def split_path(path: str) -> Tuple[str, str]:
    """Return ``(directory, filename)``; directory is '' at the bucket root."""
    if "/" not in path:
        return "", path
    directory, filename = path.rsplit("/", 1)
    return directory, filename


def extract_uuid_prefix(filename: str) -> Optional[str]:
    match = UUID_PREFIX_RE.match(filename)
    return match.group(1) if match else None


def file_stem(filename: str, extension: str = DEFAULT_EXTENSION) -> str:
    lowered = filename.lower()
    if extension and lowered.endswith(extension.lower()):
        return lowered[: -len(extension)]
    return lowered


def candidate_directories(path: str, extra_dirs: Optional[Iterable[str]] = None) -> List[str]:
    """Directories worth listing when ``path`` misses.

    The original directory first, then caller-supplied alternates, then both
    spellings of a ``resolutions`` segment. Order is kept, duplicates dropped.
    """
    directory, _ = split_path(normalize_path(path))
    dirs: List[str] = []

    def add(value: Optional[str]) -> None:
        value = normalize_dir(value)
        if value not in dirs:
            dirs.append(value)

    add(directory)
    for extra in extra_dirs or ():
        if extra and normalize_dir(extra):
            add(extra)

    if _RESOLUTIONS_SEGMENT_RE.search(directory):
        add(_RESOLUTIONS_SEGMENT_RE.sub(r"\1resolutions", directory, count=1))
        add(_RESOLUTIONS_SEGMENT_RE.sub(r"\1Resolutions", directory, count=1))

    return dirs


def select_repair_candidate(
    requested_path: str,
    entries: Sequence[ListedObject],
    extension: str = DEFAULT_EXTENSION,
    signed_marker: str = DEFAULT_SIGNED_MARKER,
) -> Optional[ListedObject]:
    """Pick the object a stale ``requested_path`` most likely meant.

    Args:
        requested_path: The recorded (missing) path
        entries: Merged listings of the candidate directories
        extension: Required filename extension
        signed_marker: Substring that marks the signed variant

    Returns:
        The winning entry, or None when nothing matches
    """
    _, filename = split_path(normalize_path(requested_path))
    uuid_prefix = extract_uuid_prefix(filename)
    stem = file_stem(filename, extension)
    if not uuid_prefix and not stem:
        return None
    ext = extension.lower()

    seen = set()
    matches: List[ListedObject] = []
    for entry in entries:
        if entry.name in seen:
            continue
        seen.add(entry.name)

        base = entry.basename.lower()
        if ext and not base.endswith(ext):
            continue
        if uuid_prefix:
            if not base.startswith(uuid_prefix.lower()):
                continue
        elif stem not in base:
            continue
        matches.append(entry)

    if not matches:
        return None

    # Stable sort keeps listing order among equal timestamps.
    matches.sort(key=lambda e: e.sort_key, reverse=True)
    marker = signed_marker.lower()
    if marker:
        for entry in matches:
            if marker in entry.basename.lower():
                return entry
    return matches[0]


def title_case_segment(value: str) -> str:
    """'share_capital' -> 'ShareCapital'."""
    cleaned = re.sub(r"[_-]+", " ", value or "").strip()
    if not cleaned:
        return value
    return "".join(part[:1].upper() + part[1:] for part in cleaned.split(" ") if part)


def extra_dirs_for_record(record: LogicalRecord) -> List[str]:
    """Alternate folders a record's upload may have moved to."""
    entity = (record.entity_key or "").strip()
    if not entity:
        return []

    domain = (record.domain_key or "").strip()
    dirs = [f"{entity}/Resolutions", f"{entity}/resolutions"]
    if domain:
        dirs.append(f"{entity}/{domain}")
        dirs.append(f"{entity}/{title_case_segment(domain)}")

    unique: List[str] = []
    for d in dirs:
        d = normalize_dir(d)
        if d and d not in unique:
            unique.append(d)
    return unique


def safe_filename(name: Optional[str], fallback: str = "document") -> str:
    """Strip characters that break Content-Disposition filenames."""
    cleaned = _UNSAFE_FILENAME_RE.sub(" ", str(name or fallback))
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned or fallback
