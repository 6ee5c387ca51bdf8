"""Ignore-style pattern compilation and matching.

Patterns follow `.gitignore` syntax and are compiled into regular
expressions evaluated against paths relative to the directory that owns
the rule source (the directory holding the `.gitignore`/`.allowsafecmd`
file, or `/` for patterns declared in the config file).

Syntax summary:
- Blank lines and lines starting with `#` are skipped.
- A leading `!` negates the pattern (last match wins within one source).
- A trailing `/` restricts the pattern to directories.
- A leading `/` anchors the pattern to the base directory; any other
  pattern matches at any depth.
- `**` matches zero or more path segments, `*` and `?` stay within one
  segment, `[...]` is a character class.
"""

import logging
import os
import re
from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from safecmd.policy.errors import PatternSyntaxError, RuleSourceError
from safecmd.policy.models import Pattern, PatternSet, Tier

logger = logging.getLogger(__name__)

# Matches any number of leading segments, including none.
_ANY_PREFIX = "(?:.*/)?"


class MatchOutcome(Enum):
    """Result of evaluating a path against one pattern set.

    Attributes:
        NONE: No pattern matched the path.
        MATCHED: The last matching pattern was a positive rule.
        NEGATED: The last matching pattern was a `!` rule.
    """

    NONE = "none"
    MATCHED = "matched"
    NEGATED = "negated"


def compile_pattern(line: str, tier: Tier) -> Pattern | None:
    """Compile a single source line into a Pattern.

    Args:
        line: Raw line from a rule source.
        tier: Tier the resulting pattern belongs to.

    Returns:
        Compiled Pattern, or None for blank and comment lines.

    Raises:
        PatternSyntaxError: If the line is not a valid pattern.
    """
    raw = line.rstrip("\r\n")
    text = _strip_trailing_spaces(raw)
    if not text or text.startswith("#"):
        return None

    negated = text.startswith("!")
    if negated:
        text = text[1:]

    dir_only = text.endswith("/") and not text.endswith("\\/")
    if dir_only:
        text = text.rstrip("/")

    anchored = text.startswith("/")
    if anchored:
        text = text.lstrip("/")

    if not text:
        return None

    body = _translate(text, raw)
    prefix = "" if anchored else _ANY_PREFIX
    try:
        regex = re.compile(f"^{prefix}{body}$", re.DOTALL)
    except re.error as e:
        raise PatternSyntaxError(raw, str(e)) from e

    return Pattern(
        raw=raw,
        regex=regex,
        tier=tier,
        anchored=anchored,
        dir_only=dir_only,
        negated=negated,
    )


def compile_patterns(
    source_lines: Iterable[str],
    tier: Tier,
    base: Path,
    source: Path | None = None,
) -> PatternSet:
    """Compile rule source lines into a PatternSet.

    Args:
        source_lines: Lines of the rule source, in order.
        tier: Tier of the rule source.
        base: Directory that owns the rule source.
        source: File the lines were read from, if any.

    Returns:
        PatternSet preserving source order.

    Raises:
        PatternSyntaxError: If any line is malformed. Broken rules are never
            dropped silently since that would disable protection.
    """
    patterns: list[Pattern] = []
    for line_num, line in enumerate(source_lines, start=1):
        try:
            pattern = compile_pattern(line, tier)
        except PatternSyntaxError as e:
            raise PatternSyntaxError(e.pattern, e.reason, source=source, line=line_num) from e
        if pattern is not None:
            patterns.append(pattern)

    return PatternSet(tier=tier, base=base, patterns=tuple(patterns), source=source)


def load_pattern_file(path: Path, tier: Tier) -> PatternSet:
    """Read and compile a `.gitignore`-style file.

    Args:
        path: Rule file to read. Its parent directory becomes the base.
        tier: Tier of the rule file.

    Returns:
        Compiled PatternSet.

    Raises:
        RuleSourceError: If the file cannot be read or decoded.
        PatternSyntaxError: If the file contains a malformed pattern.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise RuleSourceError(path, str(e)) from e

    pattern_set = compile_patterns(content.splitlines(), tier, path.parent, source=path)
    logger.debug("Loaded %d %s pattern(s) from %s", len(pattern_set), tier.value, path)
    return pattern_set


def match_outcome(path: Path, pattern_set: PatternSet, is_dir: bool | None = None) -> MatchOutcome:
    """Evaluate a path against a pattern set.

    A path inside a directory matched by a positive rule is matched as well;
    a negation cannot re-include it, as with git.

    Args:
        path: Absolute path to evaluate.
        pattern_set: Patterns to evaluate against.
        is_dir: Whether the path is a directory. Looked up when None.

    Returns:
        MatchOutcome of the deciding pattern.
    """
    if not pattern_set:
        return MatchOutcome.NONE

    try:
        parts = path.relative_to(pattern_set.base).parts
    except ValueError:
        return MatchOutcome.NONE
    if not parts:
        return MatchOutcome.NONE

    if is_dir is None:
        is_dir = os.path.isdir(path) and not os.path.islink(path)

    outcome = MatchOutcome.NONE
    for depth in range(1, len(parts) + 1):
        candidate = "/".join(parts[:depth])
        leaf = depth == len(parts)
        outcome = _last_match(candidate, pattern_set, is_dir if leaf else True)
        if not leaf and outcome == MatchOutcome.MATCHED:
            return outcome
    return outcome


def matches(path: Path, pattern_set: PatternSet, is_dir: bool | None = None) -> bool:
    """Check if a path is matched by a pattern set.

    Args:
        path: Absolute path to check.
        pattern_set: Patterns to evaluate against.
        is_dir: Whether the path is a directory. Looked up when None.

    Returns:
        True if the deciding pattern is a positive rule.
    """
    return match_outcome(path, pattern_set, is_dir) == MatchOutcome.MATCHED


def ancestor_matched(path: Path, pattern_set: PatternSet) -> bool:
    """Check if a proper ancestor directory of path is matched by a positive rule.

    Args:
        path: Absolute path to check.
        pattern_set: Patterns to evaluate against.

    Returns:
        True if some directory between the base and the path (exclusive) is
        matched, regardless of rules for the path itself.
    """
    if not pattern_set:
        return False

    try:
        parts = path.relative_to(pattern_set.base).parts
    except ValueError:
        return False

    for depth in range(1, len(parts)):
        candidate = "/".join(parts[:depth])
        if _last_match(candidate, pattern_set, True) == MatchOutcome.MATCHED:
            return True
    return False


# === Private helper functions ===


def _last_match(candidate: str, pattern_set: PatternSet, is_dir: bool) -> MatchOutcome:
    """Return the outcome of the last pattern matching a relative path."""
    for pattern in reversed(pattern_set.patterns):
        if pattern.dir_only and not is_dir:
            continue
        if pattern.regex.match(candidate):
            return MatchOutcome.NEGATED if pattern.negated else MatchOutcome.MATCHED
    return MatchOutcome.NONE


def _strip_trailing_spaces(text: str) -> str:
    """Strip trailing spaces unless they are escaped with a backslash."""
    end = len(text)
    while end > 0 and text[end - 1] == " " and not (end >= 2 and text[end - 2] == "\\"):
        end -= 1
    return text[:end]


def _translate(glob: str, raw: str) -> str:
    """Translate a slash-separated glob into a regular expression body."""
    segments = glob.split("/")
    pieces: list[str] = []
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            pieces.append(".+" if last else _ANY_PREFIX)
            continue
        pieces.append(_translate_segment(segment, raw))
        if not last:
            pieces.append("/")
    return "".join(pieces)


def _translate_segment(segment: str, raw: str) -> str:
    """Translate one path segment, never letting wildcards cross `/`."""
    out: list[str] = []
    i, n = 0, len(segment)
    while i < n:
        char = segment[i]
        if char == "\\":
            if i + 1 >= n:
                raise PatternSyntaxError(raw, "dangling escape character")
            out.append(re.escape(segment[i + 1]))
            i += 2
        elif char == "*":
            while i + 1 < n and segment[i + 1] == "*":
                i += 1
            out.append("[^/]*")
            i += 1
        elif char == "?":
            out.append("[^/]")
            i += 1
        elif char == "[":
            end = _class_end(segment, i)
            if end < 0:
                raise PatternSyntaxError(raw, "unterminated character class")
            out.append(_translate_class(segment[i + 1 : end]))
            i = end + 1
        else:
            out.append(re.escape(char))
            i += 1
    return "".join(out)


def _class_end(segment: str, start: int) -> int:
    """Find the index of the `]` closing the class opened at start, or -1."""
    j = start + 1
    if j < len(segment) and segment[j] in "!^":
        j += 1
    # A `]` right after the opening bracket is a literal member.
    if j < len(segment) and segment[j] == "]":
        j += 1
    while j < len(segment):
        if segment[j] == "\\":
            j += 2
            continue
        if segment[j] == "]":
            return j
        j += 1
    return -1


def _translate_class(content: str) -> str:
    """Translate the inside of a character class."""
    negate = content[:1] in ("!", "^")
    if negate:
        content = content[1:]

    members: list[str] = []
    i = 0
    while i < len(content):
        char = content[i]
        if char == "\\" and i + 1 < len(content):
            members.append(re.escape(content[i + 1]))
            i += 2
            continue
        members.append("-" if char == "-" else re.escape(char))
        i += 1

    body = "".join(members)
    if negate:
        return f"[^/{body}]"
    return f"[{body}]"
