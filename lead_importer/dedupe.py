"""Running index of known phones and emails used to reject duplicate leads."""
from __future__ import annotations

from typing import Iterable, List, Optional, Set

from .phones import phone_keys


def normalise_email(value: Optional[str]) -> str:
    return (value or "").strip().lower()


class DuplicateIndex:
    """Phones and emails already present in the CRM or earlier in the file.

    Seed it once from the store with :meth:`from_existing`, then call
    :meth:`add_lead_contacts` for every accepted row so later rows in the
    same run collide with it.
    """

    def __init__(self) -> None:
        self._phones: Set[str] = set()
        self._emails: Set[str] = set()

    @classmethod
    def from_existing(cls, phones: Iterable[Optional[str]], emails: Iterable[Optional[str]]) -> "DuplicateIndex":
        index = cls()
        for phone in phones:
            index.add_phone(phone)
        for email in emails:
            index.add_email(email)
        return index

    @property
    def phone_count(self) -> int:
        return len(self._phones)

    @property
    def email_count(self) -> int:
        return len(self._emails)

    def has_phone(self, phone: Optional[str]) -> bool:
        keys = phone_keys(phone)
        return bool(keys) and not keys.isdisjoint(self._phones)

    def has_email(self, email: Optional[str]) -> bool:
        key = normalise_email(email)
        return bool(key) and key in self._emails

    def add_phone(self, phone: Optional[str]) -> None:
        self._phones.update(phone_keys(phone))

    def add_email(self, email: Optional[str]) -> None:
        key = normalise_email(email)
        if key:
            self._emails.add(key)

    def add_lead_contacts(
        self,
        *,
        phones: Iterable[Optional[str]] = (),
        email: Optional[str] = None,
    ) -> None:
        for phone in phones:
            self.add_phone(phone)
        self.add_email(email)

    def known_phones(self, phones: Iterable[str]) -> List[str]:
        """Return the members of ``phones`` that are already indexed."""

        return [phone for phone in phones if self.has_phone(phone)]


__all__ = ["DuplicateIndex", "normalise_email"]
