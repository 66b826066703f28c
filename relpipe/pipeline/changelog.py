"""Changelog entry extraction.

The changelog is a sequence of sections headed ``## [<version>]``, most recent
first. The release always describes the *top* section: there is no lookup by
version. Adding the entry before marking a commit for release is the
maintainer's job; a forgotten entry republishes the previous one's text
(``--strict-version`` turns that into an error).
"""

from __future__ import annotations

import re
from pathlib import Path

from relpipe.core.result import Err, Ok, Result
from relpipe.pipeline.errors import MalformedChangelog
from relpipe.pipeline.model import ChangelogEntry

# "## [1.2.3]", "## [0.4] - 2024-01-01", "## [2.0.0-rc.1]"
HEADING_RE = re.compile(r"^##[ \t]+\[(?P<key>\d+(?:\.\d+)*(?:-[0-9A-Za-z.]+)?)\]")


def _is_heading(line: str) -> bool:
    return HEADING_RE.match(line) is not None


def _trim_blank_lines(lines: list[str]) -> list[str]:
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def extract(document: str) -> Result[ChangelogEntry, MalformedChangelog]:
    """Return the key and body of the first ``## [<version>]`` section.

    The body is everything after the heading up to the next matching heading
    (or end of document), with surrounding blank lines removed. Anything above
    the first heading, such as a ``# Changelog`` title, is ignored.
    """
    # Only \n ends a line; form feeds and other separators stay in the body.
    lines = [line.removesuffix("\r") for line in document.split("\n")]

    start: int | None = None
    key = ""
    for i, line in enumerate(lines):
        m = HEADING_RE.match(line)
        if m is not None:
            start = i
            key = m.group("key")
            break

    if start is None:
        return Err(MalformedChangelog(reason="no '## [<version>]' heading found"))

    end = len(lines)
    for j in range(start + 1, len(lines)):
        if _is_heading(lines[j]):
            end = j
            break

    body = "\n".join(_trim_blank_lines(lines[start + 1 : end]))
    return Ok(ChangelogEntry(key=key, body=body))


def read_changelog(path: Path) -> Result[ChangelogEntry, MalformedChangelog]:
    try:
        text = path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Err(MalformedChangelog(reason=f"cannot read changelog: {e}", path=path))

    result = extract(text)
    if isinstance(result, Err):
        return Err(MalformedChangelog(reason=result.error.reason, path=path))
    return result
