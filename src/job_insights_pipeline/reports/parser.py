"""
Report Parser - split one long model answer into named sections.

The model is asked for numbered, titled sections but its output format is
not a contract: sections arrive reordered, decorated with markdown, or not
at all. Parsing is therefore a pure function over a table of SectionSpecs
and never raises on model output. A section that cannot be found (or is
found empty) keeps its default sentinel.

Algorithm:
1. First line-anchored, case-insensitive match of each SectionSpec pattern.
2. Sort the found sections by offset (order of appearance, not declaration).
3. A section's content starts after the newline ending its heading line and
   stops at the next found heading (or end of text).
4. Trimmed content replaces the default unless it is empty.

A heading echoed inside another section's prose is matched like any other;
only the first occurrence per pattern counts.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Sequence

logger = logging.getLogger(__name__)

COULD_NOT_PARSE = "Could not parse section."

_DECORATION = r"(?:[#*]+[ \t]*)?(?:\*\*[ \t]*)?(?:\d+\.[ \t]*)?(?:\*\*[ \t]*)?"


def is_unparsed(text: str | None) -> bool:
    """True for a blank section or one still holding a "Could not parse" sentinel."""
    return not text or not text.strip() or "could not parse" in text.lower()


def heading_pattern(title: str, regex: bool = False) -> str:
    """
    Tolerant heading pattern for a section title.

    Accepts optional markdown decoration (`#`, `*`, `**`), an optional `N.`
    number, flexible inner whitespace and a closing `**` before or after a
    trailing colon. `title` is escaped unless `regex` is True.

        heading_pattern("Common Tech Stack:")
        # matches "1. Common Tech Stack:", "### Common tech stack:",
        # "**1. Common Tech Stack:**", "2.  **Common Tech Stack**:"
    """
    colon = title.rstrip().endswith(":")
    if colon:
        title = title.rstrip()[:-1]

    if regex:
        body = title
    else:
        body = r"[ \t]+".join(re.escape(word) for word in title.split())

    pattern = _DECORATION + body + r"(?:\*\*)?"
    if colon:
        pattern += r"[ \t]*:(?:\*\*)?"
    return pattern


@dataclass(frozen=True)
class SectionSpec:
    """
    One expected section: field name, heading pattern, fallback value.

    The pattern is anchored at line start (leading spaces/tabs allowed) and
    matched case-insensitively.
    """
    name: str
    pattern: str
    default: str = COULD_NOT_PARSE
    _regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "_regex",
            re.compile(rf"^[ \t]*(?:{self.pattern})", re.IGNORECASE | re.MULTILINE),
        )

    def search(self, text: str) -> re.Match | None:
        return self._regex.search(text)


class Report(Mapping):
    """
    Immutable parse result.

    One field per SectionSpec, in declared order. Fields are readable as
    attributes (`report.stack`) or items (`report["stack"]`).
    """

    __slots__ = ("_fields", "_parsed")

    def __init__(self, fields: Mapping[str, str], parsed: Sequence[str] = ()):
        object.__setattr__(self, "_fields", dict(fields))
        object.__setattr__(self, "_parsed", frozenset(parsed))

    def __getattr__(self, name: str) -> str:
        if name.startswith("_"):
            raise AttributeError(name)
        fields = object.__getattribute__(self, "_fields")
        try:
            return fields[name]
        except KeyError:
            raise AttributeError(f"Report has no section {name!r}") from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Report is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("Report is immutable")

    def __getitem__(self, name: str) -> str:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Report({self._fields!r})"

    def is_parsed(self, name: str) -> bool:
        """True if the section was found with non-empty content."""
        if name not in self._fields:
            raise KeyError(name)
        return name in self._parsed

    @property
    def parsed_sections(self) -> list[str]:
        return [name for name in self._fields if name in self._parsed]

    def to_dict(self) -> dict[str, str]:
        return dict(self._fields)


def parse_report(raw_text: str | None, specs: Sequence[SectionSpec]) -> Report:
    """
    Parse a model answer into a Report.

    Raises:
        ValueError: two specs share a name (a configuration error, not an
            output error)
    """
    names = [spec.name for spec in specs]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValueError(f"duplicate section names: {', '.join(duplicates)}")

    text = raw_text or ""
    values = {spec.name: spec.default for spec in specs}

    found: list[tuple[int, int, SectionSpec]] = []
    for spec in specs:
        match = spec.search(text)
        if match is None:
            logger.debug("Section %s: heading not found", spec.name)
            continue
        newline = text.find("\n", match.end())
        content_start = newline + 1 if newline != -1 else match.end()
        found.append((match.start(), content_start, spec))

    found.sort(key=lambda item: item[0])

    parsed = []
    for position, (_, content_start, spec) in enumerate(found):
        if position + 1 < len(found):
            content_end = found[position + 1][0]
        else:
            content_end = len(text)
        content = text[content_start:content_end].strip()
        if content:
            values[spec.name] = content
            parsed.append(spec.name)
        else:
            logger.debug("Section %s: heading found but content empty", spec.name)

    logger.debug("Parsed %d of %d sections", len(parsed), len(specs))
    return Report(values, parsed)
