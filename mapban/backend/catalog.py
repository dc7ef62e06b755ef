"""The universe of maps a session pool may draw from."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator


DEFAULT_MAPS = (
    "Bank",
    "Border",
    "Chalet",
    "Clubhouse",
    "Coastline",
    "Consulate",
    "Favela",
    "Fortress",
    "Hereford Base",
    "House",
    "Kafe",
    "Kanal",
    "Oregon",
    "Outback",
    "Presidential Plane",
    "Skyscraper",
    "Theme Park",
    "Tower",
    "Villa",
    "Yacht",
)


@dataclass(frozen=True)
class MapCatalog:
    maps: frozenset[str]

    @classmethod
    def default(cls) -> MapCatalog:
        return cls(maps=frozenset(DEFAULT_MAPS))

    @classmethod
    def from_names(cls, names: Iterable[str]) -> MapCatalog:
        return cls(maps=frozenset(names))

    def __contains__(self, name: object) -> bool:
        return name in self.maps

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.maps))

    def __len__(self) -> int:
        return len(self.maps)

    def unknown(self, pool: Iterable[str]) -> list[str]:
        """Return the pool entries that are not part of the catalog, in pool order."""
        return [name for name in pool if name not in self.maps]
