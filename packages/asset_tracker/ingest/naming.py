"""Display-name synthesis for imported asset rows.

Asset exports rarely carry a clean asset name: the ``Memo/Description`` column
usually holds bank transaction text (``ORIG CO NAME:APPLE ... TRN: 123 ...``)
and the payee sits in its own column. A ``NameStrategy`` turns those two
values into a short label. The default ``KeywordNameStrategy`` reduces common
hardware purchases to a category word and appends the payee for context.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

# Bank wire/ACH boilerplate preceding the useful description.
_BANK_PREFIX_RE = re.compile(r"^ORIG CO NAME:.*?TRN:\s*\w+\s*", re.IGNORECASE)

# Purchase-order phrasings collapsed to "<Category> - <rest>".
_ORDER_PREFIXES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^Device purchase.*?order\s*", re.IGNORECASE), "Device - "),
    (re.compile(r"^Laptop purchase.*?order\s*", re.IGNORECASE), "Laptop - "),
    (re.compile(r"^New Laptop.*?order\s*", re.IGNORECASE), "Laptop - "),
    (re.compile(r"^Rippling device.*?order\s*", re.IGNORECASE), "Device - "),
)


class NameStrategy(Protocol):
    def __call__(self, description: str, payee: str) -> str: ...


@dataclass(frozen=True, slots=True)
class KeywordNameStrategy:
    """Keyword-driven name synthesis.

    Parameters
    ----------
    keywords:
        Ordered ``(needle, label)`` pairs; the first needle found in the
        cleaned description replaces it with ``label``. Matching is
        case-sensitive for entries whose needle has uppercase letters
        (``MacBook``) and case-insensitive otherwise.
    placeholder_payees:
        Payee names that carry no information (payroll/HR processors) and are
        never appended.
    """

    keywords: tuple[tuple[str, str], ...] = (
        ("MacBook", "MacBook Pro"),
        ("laptop", "Laptop"),
        ("device", "Computer Device"),
    )
    placeholder_payees: frozenset[str] = frozenset({"People Center"})
    unknown: str = "Unknown Asset"
    fallback: str = "Computer Equipment"

    def _match_keyword(self, text: str) -> str | None:
        for needle, label in self.keywords:
            haystack = text if needle != needle.lower() else text.lower()
            if needle in haystack:
                return label
        return None

    def __call__(self, description: str, payee: str) -> str:
        description = (description or "").strip()
        payee = (payee or "").strip()
        if not description:
            return payee or self.unknown

        name = _BANK_PREFIX_RE.sub("", description)
        for pattern, replacement in _ORDER_PREFIXES:
            name = pattern.sub(replacement, name)
        name = name.strip()

        label = self._match_keyword(name)
        if label is not None:
            name = label

        if payee and payee not in self.placeholder_payees and payee not in name:
            name = f"{name} ({payee})" if name else payee

        return name or self.fallback


__all__ = ["NameStrategy", "KeywordNameStrategy"]
