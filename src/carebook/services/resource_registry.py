"""Caregiver registry.

Caregivers are configured once at start-up and never change afterwards.
Lookups ignore case, accents and redundant whitespace, so "Lucía", "lucia"
and " LUCIA " resolve to the same caregiver.
"""

import json
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import yaml

from carebook.services.errors import NotFoundError


def normalize_name(name: str) -> str:
    """Lookup key for a caregiver name."""
    decomposed = unicodedata.normalize("NFKD", name or "")
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return " ".join(stripped.casefold().split())


@dataclass(frozen=True)
class Caregiver:
    """A bookable caregiver and its calendar."""

    name: str
    calendar_id: str
    email: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "calendar_id": self.calendar_id, "email": self.email}


class ResourceRegistry:
    """Immutable table of caregivers keyed by normalized name."""

    def __init__(self, caregivers: list[Caregiver]):
        by_key: dict[str, Caregiver] = {}
        for caregiver in caregivers:
            key = normalize_name(caregiver.name)
            if not key:
                raise ValueError("Caregiver names must not be empty")
            if not caregiver.calendar_id:
                raise ValueError(f"Caregiver '{caregiver.name}' has no calendar id")
            if key in by_key:
                raise ValueError(
                    f"Caregivers '{by_key[key].name}' and '{caregiver.name}' share the same lookup key"
                )
            by_key[key] = caregiver
        self._by_key = by_key

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "ResourceRegistry":
        """Build from ``{name: {"calendarId": ..., "email": ...}}``.

        ``calendar_id`` is accepted as an alias of ``calendarId``.
        """
        caregivers = []
        for name, entry in (data or {}).items():
            entry = entry or {}
            caregivers.append(
                Caregiver(
                    name=str(name).strip(),
                    calendar_id=str(entry.get("calendarId") or entry.get("calendar_id") or ""),
                    email=str(entry.get("email") or ""),
                )
            )
        return cls(caregivers)

    @classmethod
    def load(cls, path: Path | None = None, inline: str = "") -> "ResourceRegistry":
        """Load from an inline JSON string or a YAML/JSON file.

        Inline configuration wins when both are given. A missing file yields an
        empty registry.
        """
        if inline:
            return cls.from_mapping(json.loads(inline))
        if path is not None and path.exists():
            with open(path) as f:
                return cls.from_mapping(yaml.safe_load(f) or {})
        return cls([])

    def get(self, name: str) -> Caregiver:
        """Resolve a caregiver by name.

        Raises:
            NotFoundError: If no caregiver matches.
        """
        caregiver = self._by_key.get(normalize_name(name))
        if caregiver is None:
            raise NotFoundError(
                code="caregiver_not_found",
                message=f"Caregiver '{name}' not found",
                suggestion="List caregivers with GET /api/caregivers",
            )
        return caregiver

    def names(self) -> list[str]:
        return [c.name for c in self._by_key.values()]

    def calendar_ids(self) -> set[str]:
        return {c.calendar_id for c in self._by_key.values()}

    def __iter__(self) -> Iterator[Caregiver]:
        return iter(self._by_key.values())

    def __len__(self) -> int:
        return len(self._by_key)
