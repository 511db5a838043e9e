"""Decide which platform a record from a multi-platform source belongs to."""
from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

from .common import Platform


@dataclass(frozen=True)
class PlatformRule:
    platform: Platform
    resources: tuple[str, ...]
    hosts: tuple[str, ...]
    keywords: tuple[str, ...]


PLATFORM_RULES = (
    PlatformRule(
        platform=Platform.CODEFORCES,
        resources=('codeforces.com', 'codeforces'),
        hosts=('codeforces.com',),
        keywords=('codeforces',),
    ),
    PlatformRule(
        platform=Platform.ATCODER,
        resources=('atcoder.jp', 'atcoder'),
        hosts=('atcoder.jp',),
        keywords=('atcoder',),
    ),
    PlatformRule(
        platform=Platform.CODECHEF,
        resources=('codechef.com', 'codechef'),
        hosts=('codechef.com',),
        keywords=('codechef', 'starters'),
    ),
)


def detect_platform(
    resource: str | None = None,
    url: str | None = None,
    name: str | None = None,
    rules=PLATFORM_RULES,
) -> Platform | None:
    """Return the platform for a record, or None when no rule matches.

    Explicit resource field beats URL host, which beats a name keyword.
    Each stage checks every rule before falling through to the next one.
    Unmatched records are meant to be dropped, not guessed.
    """
    resource = (resource or '').strip().lower()
    if resource:
        for rule in rules:
            if resource in rule.resources:
                return rule.platform

    host = urlsplit((url or '').strip()).netloc.lower()
    if host:
        for rule in rules:
            if any(fragment in host for fragment in rule.hosts):
                return rule.platform

    name = (name or '').lower()
    if name:
        for rule in rules:
            if any(keyword in name for keyword in rule.keywords):
                return rule.platform

    return None
