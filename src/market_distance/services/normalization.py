"""Address canonicalization and market identity.

Vendor-entered addresses arrive from several free-text sources (self entry,
provider autocomplete text, legacy single-address fields). Keys are only stable
if every source goes through the same canonicalization first, so the rules live
in one configurable object instead of being repeated at each call site.
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from ..config import settings

_WHITESPACE = re.compile(r"\s+")

DAY_ORDER: tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
_DAY_ALIASES = {
    "sun": "Sun", "sunday": "Sun",
    "mon": "Mon", "monday": "Mon",
    "tue": "Tue", "tues": "Tue", "tuesday": "Tue",
    "wed": "Wed", "weds": "Wed", "wednesday": "Wed",
    "thu": "Thu", "thur": "Thu", "thurs": "Thu", "thursday": "Thu",
    "fri": "Fri", "friday": "Fri",
    "sat": "Sat", "saturday": "Sat",
}


class AddressNormalizer:
    """Canonicalizes address text before any key is derived from it."""

    def __init__(self, suffixes: Sequence[str] | None = None) -> None:
        suffixes = tuple(settings.address_suffixes if suffixes is None else suffixes)
        self.suffixes = suffixes
        if suffixes:
            alternatives = "|".join(re.escape(suffix.strip()) for suffix in suffixes if suffix.strip())
            self._suffix_pattern = re.compile(rf"(?:,\s*(?:{alternatives})\s*)+$", re.IGNORECASE)
        else:
            self._suffix_pattern = None

    def canonicalize(self, address: str | None) -> str:
        """Collapse whitespace, drop trailing commas and configured country suffixes."""
        if not address:
            return ""
        text = _WHITESPACE.sub(" ", address).strip()
        if self._suffix_pattern is not None:
            text = self._suffix_pattern.sub("", text)
        return text.rstrip(", ").strip()

    def address_key(self, address: str | None) -> str:
        """Lookup key for the coordinate cache."""
        return self.canonicalize(address).casefold()

    def market_key(self, name: str | None, address: str | None) -> str:
        """Identity shared by every vendor record that points at the same market."""
        composite = f"{(name or '').strip()}-{self.canonicalize(address)}"
        return _WHITESPACE.sub("-", composite.strip()).lower()

    def display_address(self, address: str | None) -> str:
        return self.canonicalize(address)


default_normalizer = AddressNormalizer()


def normalize_day(day: str) -> str:
    text = (day or "").strip()
    return _DAY_ALIASES.get(text.lower().rstrip("."), text)


def normalize_days(days: Iterable[str] | None) -> frozenset[str]:
    return frozenset(normalized for normalized in (normalize_day(day) for day in (days or ())) if normalized)


def sorted_days(days: Iterable[str]) -> list[str]:
    """Week order for known days, alphabetical for anything unrecognized."""
    return sorted(days, key=lambda day: (DAY_ORDER.index(day), "") if day in DAY_ORDER else (len(DAY_ORDER), day))
