"""Domain policy matching.

Patterns come in three flavours, checked in this order:

1. ``/body/`` is a case-insensitive regular expression searched in the host.
   An invalid body compiles to a matcher that never matches.
2. Anything containing ``*`` or ``?`` is a glob anchored to the full host.
   A leading ``*.`` also matches the bare parent domain.
3. Everything else is a suffix match: the host itself or any subdomain.

Empty patterns never match.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

from webdigest.models.policy import DomainMode, DomainPolicy

Matcher = Callable[[str], bool]


def _never(host: str) -> bool:
    return False


def glob_to_regex(glob: str) -> re.Pattern[str]:
    """``*`` → zero or more characters, ``?`` → exactly one."""
    body = "".join(
        ".*" if ch == "*" else "." if ch == "?" else re.escape(ch) for ch in glob
    )
    return re.compile(f"^{body}$", re.IGNORECASE)


def compile_pattern(pattern: str) -> Matcher | None:
    """Compile one domain pattern. Returns None for empty patterns."""
    pattern = pattern.strip()
    if not pattern:
        return None

    if len(pattern) >= 2 and pattern.startswith("/") and pattern.endswith("/"):
        try:
            regex = re.compile(pattern[1:-1], re.IGNORECASE)
        except re.error:
            return _never
        return lambda host: regex.search(host) is not None

    if "*" in pattern or "?" in pattern:
        # "*.example.com" and "..*.example.com" normalise to a subdomain glob
        # plus the bare parent.
        normalised = re.sub(r"^\.*\*?\.", "*.", pattern)
        regex = glob_to_regex(normalised)
        if normalised.startswith("*."):
            parent = glob_to_regex(normalised[2:])
            return lambda host: bool(regex.match(host) or parent.match(host))
        return lambda host: regex.match(host) is not None

    # ".example.com" is the same suffix as "example.com".
    suffix = pattern.lower().lstrip(".")
    if not suffix:
        return None

    def _suffix_match(host: str) -> bool:
        host = host.lower()
        return host == suffix or host.endswith("." + suffix)

    return _suffix_match


def matches(host: str, patterns: Iterable[str]) -> bool:
    """True if any pattern in ``patterns`` matches ``host``."""
    for pattern in patterns:
        matcher = compile_pattern(pattern)
        if matcher is not None and matcher(host):
            return True
    return False


def is_disabled(policy: DomainPolicy, host: str) -> bool:
    if policy.mode == DomainMode.ALLOW:
        return not matches(host, policy.allow_list)
    return matches(host, policy.deny_list)


def toggle_host(policy: DomainPolicy, host: str) -> DomainPolicy:
    """Flip whether the pipeline runs on ``host`` under the current mode.

    Enabling in allow mode appends the host; disabling drops every pattern
    that matches it. Deny mode mirrors this on the deny list.
    """
    if policy.mode == DomainMode.ALLOW:
        if matches(host, policy.allow_list):
            kept = tuple(p for p in policy.allow_list if not matches(host, [p]))
            return policy.model_copy(update={"allow_list": kept})
        return policy.model_copy(update={"allow_list": (*policy.allow_list, host)})

    if is_disabled(policy, host):
        kept = tuple(p for p in policy.deny_list if not matches(host, [p]))
        return policy.model_copy(update={"deny_list": kept})
    if host in policy.deny_list:
        return policy
    return policy.model_copy(update={"deny_list": (*policy.deny_list, host)})
