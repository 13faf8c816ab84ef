"""Branch name normalization.

A BranchKey is the canonical string used to compare branches across the issue
tracker and the build server. Two raw refs that normalize to the same key are
the same branch everywhere: when deduplicating candidates, when matching the
tracker's branch field, and when matching build server branch names.

Example:
    >>> normalize("refs/heads/feature/fn-1234")
    'feature/fn-1234'
    >>> normalize_for_display("feature/Dev-FN-1234.something")
    'dev-fn-1234.something'
"""

import re

REF_PREFIX = "refs/heads/"
FEATURE_PREFIX = "feature/"
DEFAULT_TICKET_PATTERN = r"fn-[0-9]{2,5}"

# Kept in front of the ticket code when a segment starts with them
_KEPT_PREFIXES = ("dev-", "static-")


def normalize(raw: str | None) -> str | None:
    """Strip the version-control ref prefix from a branch name.

    Args:
        raw: Branch name or ref, e.g. ``refs/heads/fn-123``

    Returns:
        The BranchKey, or None for empty input
    """
    if not raw:
        return None

    key = raw
    while key.startswith(REF_PREFIX):
        key = key[len(REF_PREFIX) :]
    return key or None


def normalize_for_display(raw: str | None, ticket_pattern: str = DEFAULT_TICKET_PATTERN) -> str | None:
    """Reduce a branch name to the short form used in environment URLs.

    The name is lower-cased and split on ``.``. Every segment containing a
    ticket code is replaced by just that code, keeping a ``dev-`` or
    ``static-`` prefix when the segment (after any ``feature/`` folder) starts
    with one. ``feature/`` is removed from the joined result.

    Args:
        raw: Branch name
        ticket_pattern: Regular expression matching a ticket code

    Returns:
        Display key, or None for empty input
    """
    if not raw:
        return None

    ticket = re.compile(ticket_pattern)
    segments = raw.lower().split(".")

    for i, segment in enumerate(segments):
        match = ticket.search(segment)
        if match is None:
            continue

        bare = segment.replace(FEATURE_PREFIX, "")
        prefix = next((p for p in _KEPT_PREFIXES if bare.startswith(p)), "")
        segments[i] = prefix + match.group(0)

    return ".".join(segments).replace(FEATURE_PREFIX, "")
