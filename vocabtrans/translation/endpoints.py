"""Ordered endpoint list with validation and failover promotion."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, List, Optional
from urllib.parse import urlparse

MAX_BACKUPS = 3


def is_valid_https(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme == "https" and bool(parsed.netloc)


def dedupe_https(urls: Iterable[Optional[str]]) -> List[str]:
    """Keep https URLs only, first occurrence wins."""
    result: List[str] = []
    for url in urls:
        if not is_valid_https(url):
            continue
        url = url.strip()
        if url not in result:
            result.append(url)
    return result


@dataclass
class EndpointConfig:
    """Primary translation endpoint plus ordered backups."""
    primary: str = ""
    backups: List[str] = field(default_factory=list)

    def ordered_urls(self) -> List[str]:
        """Primary first, then backups; https only, no duplicates."""
        return dedupe_https([self.primary, *self.backups])

    def promote(self, url: str, index: int) -> None:
        """
        Make ``url`` (found at ``index`` of the ordered list) the primary.

        The previous backup list is rotated to start after the promoted
        entry, the old primary is appended, and the result is capped at
        ``MAX_BACKUPS`` entries.
        """
        previous_primary = self.primary.strip() if self.primary else ""
        backups = dedupe_https(self.backups)

        k = index - 1
        if 0 <= k < len(backups):
            rotated = backups[k + 1:] + backups[:k]
        else:
            rotated = list(backups)
        rotated.append(previous_primary)

        new_backups: List[str] = []
        for candidate in rotated:
            if candidate and candidate != url and candidate not in new_backups:
                new_backups.append(candidate)

        self.primary = url
        self.backups = new_backups[:MAX_BACKUPS]
