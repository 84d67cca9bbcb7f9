"""Read access to the built-in game systems."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from imagineer.core.exceptions import NotFoundError
from imagineer.storage.base import Repository, from_json, parse_timestamp


@dataclass
class GameSystemRecord:
    """A tabletop RPG rules system.

    Attributes:
        id: Primary key.
        name: Display name.
        code: Stable short identifier (e.g., 'coc-7e').
        attribute_schema: Character attribute definitions.
        skill_schema: Skill definitions.
        dice_conventions: Dice mechanics summary.
        created_at: When the row was seeded.
    """

    id: int
    name: str
    code: str
    attribute_schema: dict[str, Any]
    skill_schema: dict[str, Any]
    dice_conventions: dict[str, Any]
    created_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> GameSystemRecord:
        """Create from database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            code=row["code"],
            attribute_schema=from_json(row["attribute_schema"], {}),
            skill_schema=from_json(row["skill_schema"], {}),
            dice_conventions=from_json(row["dice_conventions"], {}),
            created_at=parse_timestamp(row["created_at"]),
        )


class GameSystemRepository(Repository):
    """Lookups over the seeded game systems."""

    def list_all(self) -> list[GameSystemRecord]:
        """All game systems ordered by name."""
        rows = self._fetch_all("SELECT * FROM game_systems ORDER BY name")
        return [GameSystemRecord.from_row(row) for row in rows]

    def get(self, system_id: int) -> GameSystemRecord:
        """Get a game system by id.

        Raises:
            NotFoundError: If no such system exists.
        """
        row = self._fetch_one("SELECT * FROM game_systems WHERE id = ?", (system_id,))
        if row is None:
            raise NotFoundError("Game system not found", resource="game_system", resource_id=system_id)
        return GameSystemRecord.from_row(row)

    def get_by_code(self, code: str) -> GameSystemRecord:
        """Get a game system by code.

        Raises:
            NotFoundError: If no such system exists.
        """
        row = self._fetch_one("SELECT * FROM game_systems WHERE code = ?", (code,))
        if row is None:
            raise NotFoundError("Game system not found", resource="game_system", resource_id=code)
        return GameSystemRecord.from_row(row)

    def exists(self, system_id: int) -> bool:
        """Whether a game system with this id exists."""
        return self._fetch_one("SELECT 1 FROM game_systems WHERE id = ?", (system_id,)) is not None


__all__ = [
    "GameSystemRecord",
    "GameSystemRepository",
]
