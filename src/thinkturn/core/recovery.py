"""
Content recovery for truncated model output.

Pure text-repair functions used when a response was cut short:

- JSON: close an unterminated string and any open objects/arrays.
- Code blocks: close an unterminated ``` fence.
- Clean break points: find where a partial answer can be cut safely.
- Fragment combining: join continuation fragments without stray spaces.

Nothing here raises on malformed input. A failed repair returns a FAILED
result carrying the original content so callers never lose data.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import enum as _enum
import json as _json
import re as _re
import typing as _typing
import unicodedata as _unicodedata

CODE_FENCE = "```"

SENTENCE_TERMINATORS = frozenset(".!?。、！？")
"""ASCII terminators plus ideographic full stop/comma and fullwidth !/?."""

_JSON_OPENERS = {"{": "}", "[": "]"}
_JSON_CLOSERS = frozenset("}]")

_TRAILING_LITERAL = _re.compile(r"[A-Za-z0-9.+-]+$")
_PARTIAL_UNICODE_ESCAPE = _re.compile(r"\\u[0-9a-fA-F]{0,3}$")

MIN_OVERLAP_CHARS = 16
"""Shorter suffix/prefix matches between fragments are treated as coincidence."""

MAX_OVERLAP_CHARS = 2000
"""Upper bound on the repeated tail searched for when merging fragments."""


class ContentRecoveryStatus(_enum.Enum):
    """Outcome of a recovery attempt."""

    NO_RECOVERY_NEEDED = "no_recovery_needed"
    RECOVERED = "recovered"
    PARTIALLY_RECOVERED = "partially_recovered"
    """Recovered by dropping a trailing incomplete element."""
    FAILED = "failed"


@_dataclasses.dataclass(frozen=True)
class ContentRecoveryResult:
    """Result of a content recovery operation."""

    status: ContentRecoveryStatus
    content: str
    """Repaired content, or the original content when nothing could be done."""

    description: str | None = None
    """Human-readable account of what was done (or why it failed)."""

    @property
    def is_success(self) -> bool:
        """True for every status except FAILED."""
        return self.status is not ContentRecoveryStatus.FAILED

    @property
    def was_modified(self) -> bool:
        """True if the content differs from the input."""
        return self.status in (
            ContentRecoveryStatus.RECOVERED,
            ContentRecoveryStatus.PARTIALLY_RECOVERED,
        )

    @classmethod
    def no_recovery_needed(cls, content: str) -> ContentRecoveryResult:
        return cls(ContentRecoveryStatus.NO_RECOVERY_NEEDED, content)

    @classmethod
    def recovered(cls, content: str, description: str) -> ContentRecoveryResult:
        return cls(ContentRecoveryStatus.RECOVERED, content, description)

    @classmethod
    def partially_recovered(cls, content: str, description: str) -> ContentRecoveryResult:
        return cls(ContentRecoveryStatus.PARTIALLY_RECOVERED, content, description)

    @classmethod
    def failed(cls, original: str, reason: str) -> ContentRecoveryResult:
        return cls(ContentRecoveryStatus.FAILED, original, reason)


# =============================================================================
# JSON
# =============================================================================


@_dataclasses.dataclass
class _JsonScan:
    """State at the end of a character scan over JSON-ish text."""

    closers: list[str]
    """Expected closers for every open container, innermost last."""

    in_string: bool
    escaped: bool
    """The scan ended right after a backslash inside a string."""

    mismatched: bool
    """A closer appeared that did not match the innermost open container."""

    last_complete: int
    """Index just past the last completed value/member, or 0."""


def _scan_json(text: str) -> _JsonScan:
    closers: list[str] = []
    in_string = False
    escaped = False
    mismatched = False
    last_complete = 0

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
                last_complete = i + 1
            continue

        if ch == '"':
            in_string = True
        elif ch in _JSON_OPENERS:
            closers.append(_JSON_OPENERS[ch])
        elif ch in _JSON_CLOSERS:
            if not closers or closers[-1] != ch:
                mismatched = True
                break
            closers.pop()
            last_complete = i + 1
        elif ch == ",":
            last_complete = i

    return _JsonScan(closers, in_string, escaped, mismatched, last_complete)


def _is_valid_json(text: str) -> bool:
    try:
        _json.loads(text)
    except ValueError:
        return False
    return True


def _close_string(text: str, scan: _JsonScan) -> str:
    """Terminate an open string literal without leaving a broken escape."""
    if scan.escaped:
        text = text[:-1]
    match = _PARTIAL_UNICODE_ESCAPE.search(text)
    if match is not None:
        backslashes = len(text[: match.start() + 1]) - len(text[: match.start() + 1].rstrip("\\"))
        if backslashes % 2 == 1:
            text = text[: match.start()]
    return text + '"'


def _strip_partial_literal(text: str) -> str:
    """
    Trim an incomplete number or keyword at the end of the text.

    ``2.`` becomes ``2``, ``-1e`` becomes ``-1``; ``tru`` or a lone ``-``
    is dropped entirely.
    """
    stripped = text.rstrip()
    match = _TRAILING_LITERAL.search(stripped)
    if match is None:
        return stripped

    token = match.group(0)
    if _is_valid_json(token):
        return stripped

    head = stripped[: match.start()]
    trimmed = token.rstrip(".eE+-")
    if trimmed and _is_valid_json(trimmed):
        return head + trimmed
    return head.rstrip()


def _strip_dangling(text: str) -> str:
    """
    Remove trailing syntax that cannot legally precede a closer.

    Handles a trailing comma and a key with no value (``"key":``).
    """
    stripped = text.rstrip()
    while stripped and stripped[-1] in ",:":
        if stripped[-1] == ":":
            # Drop the colon and the key that precedes it.
            stripped = _drop_trailing_string(stripped[:-1].rstrip())
        else:
            stripped = stripped[:-1].rstrip()
    return stripped


def _drop_trailing_string(text: str) -> str:
    if not text.endswith('"'):
        return text
    i = len(text) - 2
    while i >= 0:
        if text[i] == '"':
            backslashes = 0
            j = i - 1
            while j >= 0 and text[j] == "\\":
                backslashes += 1
                j -= 1
            if backslashes % 2 == 0:
                return text[:i].rstrip()
        i -= 1
    return text


def _close_json(text: str) -> str | None:
    scan = _scan_json(text)
    if scan.mismatched:
        return None

    if scan.in_string:
        repaired = _close_string(text, scan)
    else:
        repaired = _strip_partial_literal(text)

    repaired = _strip_dangling(repaired)
    rescan = _scan_json(repaired)
    if rescan.mismatched or rescan.in_string:
        return None

    # An object whose last member is a lone key ({"a": 1, "b") needs the key dropped.
    if rescan.closers and rescan.closers[-1] == "}" and repaired.endswith('"'):
        candidate = repaired + "".join(reversed(rescan.closers))
        if not _is_valid_json(candidate):
            repaired = _strip_dangling(_drop_trailing_string(repaired))
            rescan = _scan_json(repaired)
            if rescan.mismatched or rescan.in_string:
                return None

    return repaired + "".join(reversed(rescan.closers))


def _truncate_to_valid_json(text: str) -> str | None:
    """Cut back to the last complete element and close what remains open."""
    end = len(text)
    while end > 0:
        scan = _scan_json(text[:end])
        cut = scan.last_complete
        if cut <= 0 or cut >= end:
            cut = end - 1
        candidate = _close_json(text[:cut])
        if candidate is not None and _is_valid_json(candidate):
            return candidate
        end = cut
    return None


def try_recover_json(text: str) -> ContentRecoveryResult:
    """
    Attempt to repair JSON that was cut off mid-document.

    Scans character by character tracking open ``{``/``[`` containers and
    string/escape state, then appends a closing quote (if the scan ended
    inside a string) followed by the missing closers in LIFO order.

    Args:
        text: Possibly truncated JSON text.

    Returns:
        NO_RECOVERY_NEEDED if already balanced, RECOVERED with the closed
        text, PARTIALLY_RECOVERED if a trailing incomplete element had to be
        dropped, or FAILED (original content preserved).
    """
    if not text or not text.strip():
        return ContentRecoveryResult.failed(text, "Input is empty")

    trimmed = text.strip()
    if trimmed[0] not in _JSON_OPENERS:
        return ContentRecoveryResult.failed(text, "Input does not look like JSON")

    scan = _scan_json(trimmed)
    if scan.mismatched:
        return ContentRecoveryResult.failed(text, "Mismatched JSON closer")

    if not scan.closers and not scan.in_string:
        return ContentRecoveryResult.no_recovery_needed(trimmed)

    repaired = _close_json(trimmed)
    if repaired is not None and _is_valid_json(repaired):
        parts = []
        if scan.in_string:
            parts.append("closed 1 string")
        parts.append(f"closed {len(scan.closers)} container(s)")
        return ContentRecoveryResult.recovered(repaired, "JSON repaired: " + ", ".join(parts))

    truncated = _truncate_to_valid_json(trimmed)
    if truncated is not None:
        return ContentRecoveryResult.partially_recovered(
            truncated, "Truncated to last complete element"
        )

    return ContentRecoveryResult.failed(text, "Unable to recover JSON")


def looks_like_json(text: str) -> bool:
    """Whether the text starts like a JSON object or array."""
    stripped = text.lstrip()
    return bool(stripped) and stripped[0] in _JSON_OPENERS


# =============================================================================
# Code blocks
# =============================================================================


def try_recover_code_blocks(text: str) -> ContentRecoveryResult:
    """
    Close an unterminated Markdown code fence.

    Args:
        text: Text that may contain code fences.

    Returns:
        NO_RECOVERY_NEEDED if fences are balanced, otherwise RECOVERED with a
        bare closing fence appended on its own line.
    """
    if not text or text.count(CODE_FENCE) % 2 == 0:
        return ContentRecoveryResult.no_recovery_needed(text)

    repaired = text if text.endswith("\n") else text + "\n"
    repaired += CODE_FENCE + "\n"
    return ContentRecoveryResult.recovered(repaired, "Closed 1 code block(s)")


# =============================================================================
# Break points and fragments
# =============================================================================


def find_clean_truncation_point(text: str) -> int:
    """
    Find the last position where the text can be cut cleanly.

    Searched in priority order: last sentence terminator, last paragraph
    break, last line break.

    Args:
        text: The text to analyze.

    Returns:
        Index just past the matched delimiter, or -1 if there is none.
    """
    if not text:
        return -1

    for i in range(len(text) - 1, -1, -1):
        if text[i] in SENTENCE_TERMINATORS:
            return i + 1

    paragraph = text.rfind("\n\n")
    if paragraph >= 0:
        return paragraph + 2

    line = text.rfind("\n")
    if line >= 0:
        return line + 1

    return -1


def _is_boundary_char(ch: str) -> bool:
    return ch.isspace() or _unicodedata.category(ch).startswith("P")


def combine_fragments(fragments: _typing.Iterable[str]) -> str:
    """
    Join response fragments into one text.

    Empty fragments are skipped. A single space is inserted between two
    fragments only when neither side of the join is whitespace or
    punctuation.

    Args:
        fragments: Fragments in arrival order.

    Returns:
        The combined text.
    """
    parts: list[str] = []
    for fragment in fragments:
        if not fragment:
            continue
        if parts:
            left = parts[-1][-1]
            right = fragment[0]
            if not _is_boundary_char(left) and not _is_boundary_char(right):
                parts.append(" ")
        parts.append(fragment)
    return "".join(parts)


def overlap_length(
    accumulated: str,
    fragment: str,
    *,
    min_size: int = MIN_OVERLAP_CHARS,
    max_size: int = MAX_OVERLAP_CHARS,
) -> int:
    """
    Length of the longest suffix of ``accumulated`` that prefixes ``fragment``.

    Models asked to continue often repeat the tail of what they already said.
    Overlaps shorter than ``min_size`` are treated as coincidence and ignored.

    Args:
        accumulated: Text received so far.
        fragment: Newly received continuation text.
        min_size: Smallest overlap that counts as a repeat.
        max_size: Largest overlap searched for.

    Returns:
        Number of leading characters of ``fragment`` already present, or 0.
    """
    limit = min(len(accumulated), len(fragment), max_size)
    for size in range(limit, min_size - 1, -1):
        if accumulated.endswith(fragment[:size]):
            return size
    return 0
