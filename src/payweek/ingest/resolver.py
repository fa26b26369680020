"""Entity resolution: normalized exact-match lookups against registry snapshots.

Never fuzzy, never creates registry entries. A miss is ``None`` and the
caller decides how to warn.
"""
from __future__ import annotations
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Iterable


def normalize(text: Any) -> str:
    """Lowercase, decompose, strip diacritics, then trim. ``None`` gives ``""``."""
    if text is None:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text).lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).strip()


@dataclass(frozen=True)
class RegistryEntry:
    id: str
    name: str
    client: str | None = None


@dataclass(frozen=True)
class RegistrySnapshot:
    """Registries as read once at the start of a run."""
    employees: tuple[RegistryEntry, ...] = field(default_factory=tuple)
    contractors: tuple[RegistryEntry, ...] = field(default_factory=tuple)
    projects: tuple[RegistryEntry, ...] = field(default_factory=tuple)


def _index(entries: Iterable[RegistryEntry]) -> dict[str, RegistryEntry]:
    out: dict[str, RegistryEntry] = {}
    for entry in entries:
        key = normalize(entry.name)
        if key:
            out.setdefault(key, entry)
    return out


class EntityResolver:
    def __init__(self, snapshot: RegistrySnapshot) -> None:
        self._employees = _index(snapshot.employees)
        self._contractors = _index(snapshot.contractors)
        self._projects = _index(snapshot.projects)
        # Client names index projects too, but never shadow a project name.
        for project in snapshot.projects:
            key = normalize(project.client)
            if key:
                self._projects.setdefault(key, project)

    def match_employee(self, name: Any) -> RegistryEntry | None:
        return self._employees.get(normalize(name))

    def match_contractor(self, name: Any) -> RegistryEntry | None:
        return self._contractors.get(normalize(name))

    def match_project(self, name: Any) -> RegistryEntry | None:
        return self._projects.get(normalize(name))
