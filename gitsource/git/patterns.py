"""
Tag name patterns.

Patterns are shell globs where ``*`` never crosses a ``/``. Three forms:

    refs/tags/v*   ref-qualified: matched against "refs/tags/<tag>"
    sdk/go/v*      prefix-qualified: matched against the full tag name
    v*             bare: matched against the last segment of the tag name

So "v*" matches both "v0.9.3" and "sdk/go/v0.9.3", "refs/tags/v*" only
matches "v0.9.3", and "sdk/go/v*" only matches "sdk/go/v0.9.3".
Matching is case-sensitive.
"""

from fnmatch import fnmatchcase
from typing import Iterable, List, Optional, Sequence

TAG_PREFIX = "refs/tags/"


def glob_match(name: str, pattern: str) -> bool:
    """Anchored glob match, segment by segment."""
    name_parts = name.split("/")
    pattern_parts = pattern.split("/")
    if len(name_parts) != len(pattern_parts):
        return False
    return all(fnmatchcase(n, p) for n, p in zip(name_parts, pattern_parts))


def matches(tag_name: str, pattern: str) -> bool:
    """Check whether a tag name (without refs/tags/) matches a pattern."""
    if pattern.startswith("refs/"):
        return glob_match(f"{TAG_PREFIX}{tag_name}", pattern)
    if "/" in pattern:
        return glob_match(tag_name, pattern)
    return fnmatchcase(tag_name.rsplit("/", 1)[-1], pattern)


def filter_tags(
    tag_names: Iterable[str], patterns: Optional[Sequence[str]] = None
) -> List[str]:
    """
    Select the tags matching at least one pattern.

    Args:
        tag_names: Tag names without the refs/tags/ prefix
        patterns: Patterns to match; None or empty keeps every tag

    Returns:
        Sorted, de-duplicated list of matching tag names
    """
    unique = sorted(set(tag_names))
    if not patterns:
        return unique
    return [tag for tag in unique if any(matches(tag, p) for p in patterns)]
