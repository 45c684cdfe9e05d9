"""
JSON import for the content catalog: users, interviews, and interactions.

Format — a single JSON object with up to three arrays::

    {
      "users": [
        {"user_id": 1, "username": "ada", "interests": ["python"],
         "career_level": "senior", "industry": "fintech"}
      ],
      "interviews": [
        {"item_id": 10, "title": "System design at scale", "category": "tech",
         "creator_id": 1, "duration": 1500, "view_count": 1200,
         "like_count": 90, "tags": ["architecture", "scaling"],
         "status": "published", "is_public": true,
         "created_at": "2026-01-05T12:00:00Z"}
      ],
      "interactions": [
        {"user_id": 1, "item_id": 10, "action_type": "view",
         "duration_watched": 700, "created_at": "2026-01-06T09:30:00Z"}
      ]
    }

Missing arrays are treated as empty. Every record is validated before any
is returned; if **any** record fails, a single ``ValueError`` lists the
first 10 failures. Rows are written users → interviews → interactions so
foreign keys resolve.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from interview_recommender.db.repositories.content_repo import ContentRepository
from interview_recommender.db.repositories.interaction_repo import InteractionRepository
from interview_recommender.db.repositories.user_repo import UserRepository
from interview_recommender.models.content import ContentItem, Interaction, UserRecord

logger = logging.getLogger(__name__)

_SECTIONS: dict[str, type[BaseModel]] = {
    "users":        UserRecord,
    "interviews":   ContentItem,
    "interactions": Interaction,
}


@dataclass
class Catalog:
    """Validated catalog records, ready for insertion."""

    users:        list[UserRecord] = field(default_factory=list)
    interviews:   list[ContentItem] = field(default_factory=list)
    interactions: list[Interaction] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "users":        len(self.users),
            "interviews":   len(self.interviews),
            "interactions": len(self.interactions),
        }


def parse_catalog_json(path: Path) -> Catalog:
    """Read and validate a catalog JSON file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is not a JSON object or any record is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as exc:
        raise ValueError(f"JSON parse error in {path.name}: {exc}") from exc

    catalog = parse_catalog(raw, source=path.name)
    logger.info("Parsed catalog %s: %s", path.name, catalog.counts())
    return catalog


def parse_catalog(raw: Any, source: str = "<catalog>") -> Catalog:
    """Validate an already-decoded catalog document."""
    if not isinstance(raw, dict):
        raise ValueError(f"{source}: catalog must be a JSON object with 'users', 'interviews', 'interactions'.")

    catalog = Catalog()
    errors: list[tuple[str, int, str]] = []

    for section, model in _SECTIONS.items():
        records = raw.get(section) or []
        if not isinstance(records, list):
            errors.append((section, -1, "must be an array"))
            continue
        target: list = getattr(catalog, section)
        for i, record in enumerate(records):
            try:
                target.append(model.model_validate(record))
            except ValidationError as exc:
                errors.append((section, i, str(exc)))

    if errors:
        max_shown = 10
        detail = "\n".join(
            f"  {section}[{idx}]: {msg}" if idx >= 0 else f"  {section}: {msg}"
            for section, idx, msg in errors[:max_shown]
        )
        suffix = f"\n  … and {len(errors) - max_shown} more" if len(errors) > max_shown else ""
        raise ValueError(f"{len(errors)} record(s) failed validation in {source}:\n{detail}{suffix}")

    return catalog


def write_catalog(conn: sqlite3.Connection, catalog: Catalog) -> dict[str, int]:
    """Insert every catalog record. Returns per-section insert counts."""
    users = UserRepository(conn)
    for user in catalog.users:
        users.insert(user)

    interviews = ContentRepository(conn)
    for item in catalog.interviews:
        interviews.insert(item)

    interactions = InteractionRepository(conn)
    for interaction in catalog.interactions:
        interactions.insert(interaction)

    return catalog.counts()
