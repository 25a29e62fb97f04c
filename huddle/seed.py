"""Starter circles and meetups for a fresh data file."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from .identifiers import CIRCLE_ID_LENGTH, MEETUP_ID_LENGTH, MESSAGE_ID_LENGTH, generate_id
from .models import ChatMessage, Circle, Community, Meetup

SYSTEM_AUTHOR_ID = "sys"
SYSTEM_AUTHOR_NAME = "System"


@dataclass(frozen=True)
class SeedCircle:
    name: str
    label: str
    status: str
    info: str

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "SeedCircle":
        required_fields = {"name", "status", "info"}
        missing = required_fields - data.keys()
        if missing:
            raise ValueError(f"Missing required seed circle fields: {', '.join(sorted(missing))}")
        name = str(data["name"])
        return SeedCircle(
            name=name,
            label=str(data.get("label") or name),
            status=str(data["status"]),
            info=str(data["info"]),
        )


@dataclass(frozen=True)
class SeedMeetup:
    title: str
    details: str
    time: str
    total: int

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "SeedMeetup":
        required_fields = {"title", "total"}
        missing = required_fields - data.keys()
        if missing:
            raise ValueError(f"Missing required seed meetup fields: {', '.join(sorted(missing))}")
        return SeedMeetup(
            title=str(data["title"]),
            details=str(data.get("details", "")),
            time=str(data.get("time", "")),
            total=int(data["total"]),
        )


@dataclass(frozen=True)
class SeedTable:
    circles: List[SeedCircle]
    meetups: List[SeedMeetup]


def resolve_seed_path(env_value: Optional[str]) -> Path:
    """Resolve the seed table, defaulting to the copy shipped with the package."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent / "seed.yaml").resolve(strict=False)


def load_seed_table(path: Path) -> SeedTable:
    """Load the seed table from a YAML file."""
    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    return SeedTable(
        circles=[SeedCircle.from_dict(item) for item in raw.get("circles") or []],
        meetups=[SeedMeetup.from_dict(item) for item in raw.get("meetups") or []],
    )


def welcome_message(label: str, ts: int) -> ChatMessage:
    return ChatMessage(
        id=generate_id(MESSAGE_ID_LENGTH),
        author_id=SYSTEM_AUTHOR_ID,
        author_name=SYSTEM_AUTHOR_NAME,
        message=f"Welcome to {label}!",
        ts=ts,
    )


def apply_seed(community: Community, table: SeedTable, *, now_ms: int) -> bool:
    """Populate ``community`` from ``table`` when it has no circles yet.

    Returns ``True`` when anything was written. Existing meetups are replaced,
    mirroring a first run against an empty file.
    """

    with community.lock:
        if community.circles:
            return False

        for entry in table.circles:
            circle = Circle(
                id=generate_id(CIRCLE_ID_LENGTH),
                name=entry.name,
                status=entry.status,
                info=entry.info,
            )
            community.circles.append(circle)
            community.chats[circle.id] = [welcome_message(entry.label, now_ms)]

        community.meetups = [
            Meetup(
                id=generate_id(MEETUP_ID_LENGTH),
                title=entry.title,
                details=entry.details,
                time=entry.time,
                total=entry.total,
            )
            for entry in table.meetups
        ]
        return True


__all__ = [
    "SYSTEM_AUTHOR_ID",
    "SYSTEM_AUTHOR_NAME",
    "SeedCircle",
    "SeedMeetup",
    "SeedTable",
    "apply_seed",
    "load_seed_table",
    "resolve_seed_path",
    "welcome_message",
]
