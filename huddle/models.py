"""Domain models for circles, chats, meetups and their users."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

DEFAULT_USER_NAME = "User"
DEFAULT_USER_STATUS = "free"


@dataclass
class User:
    """A person identified by an id supplied by the client app."""

    id: str
    name: str = DEFAULT_USER_NAME
    status: str = DEFAULT_USER_STATUS
    availability: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "availability": dict(self.availability),
        }

    @staticmethod
    def from_dict(user_id: str, data: Mapping[str, Any]) -> "User":
        return User(
            id=str(user_id),
            name=str(data.get("name", DEFAULT_USER_NAME)),
            status=str(data.get("status", DEFAULT_USER_STATUS)),
            availability={str(day): str(state) for day, state in dict(data.get("availability") or {}).items()},
        )


@dataclass
class Circle:
    """A named interest group. ``members`` never holds the same id twice."""

    id: str
    name: str
    status: str
    info: str
    members: List[str] = field(default_factory=list)

    def add_member(self, user_id: str) -> bool:
        if user_id in self.members:
            return False
        self.members.append(user_id)
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "members": list(self.members),
            "status": self.status,
            "info": self.info,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Circle":
        members: List[str] = []
        for member in data.get("members") or []:
            if member not in members:
                members.append(member)
        return Circle(
            id=str(data["id"]),
            name=str(data["name"]),
            status=str(data.get("status", "")),
            info=str(data.get("info", "")),
            members=members,
        )


@dataclass
class ChatMessage:
    """A single chat line. The author name is captured when it is posted."""

    id: str
    author_id: str
    author_name: str
    message: str
    ts: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "authorId": self.author_id,
            "authorName": self.author_name,
            "message": self.message,
            "ts": self.ts,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "ChatMessage":
        return ChatMessage(
            id=str(data["id"]),
            author_id=str(data.get("authorId", "")),
            author_name=str(data.get("authorName", "")),
            message=str(data.get("message", "")),
            ts=int(data.get("ts", 0)),
        )


@dataclass
class Meetup:
    """A scheduled gathering with at most ``total`` attendees."""

    id: str
    title: str
    details: str
    time: str
    total: int
    attendees: List[str] = field(default_factory=list)

    @property
    def people(self) -> int:
        return len(self.attendees)

    def add_attendee(self, user_id: str) -> bool:
        """Add ``user_id`` unless already attending or the meetup is full."""

        if user_id in self.attendees:
            return False
        if len(self.attendees) >= self.total:
            return False
        self.attendees.append(user_id)
        return True

    def summary(self) -> Dict[str, Any]:
        """Public projection that exposes the head count but not the attendees."""

        return {
            "id": self.id,
            "title": self.title,
            "details": self.details,
            "time": self.time,
            "total": self.total,
            "people": self.people,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "details": self.details,
            "time": self.time,
            "total": self.total,
            "attendees": list(self.attendees),
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Meetup":
        attendees: List[str] = []
        for attendee in data.get("attendees") or []:
            if attendee not in attendees:
                attendees.append(attendee)
        return Meetup(
            id=str(data["id"]),
            title=str(data["title"]),
            details=str(data.get("details", "")),
            time=str(data.get("time", "")),
            total=int(data.get("total", 0)),
            attendees=attendees,
        )


@dataclass
class Community:
    """The aggregate root persisted as one JSON document.

    Request handlers and the flush timer both go through :attr:`lock`; the
    timer serializes on its own thread.
    """

    users: Dict[str, User] = field(default_factory=dict)
    circles: List[Circle] = field(default_factory=list)
    chats: Dict[str, List[ChatMessage]] = field(default_factory=dict)
    meetups: List[Meetup] = field(default_factory=list)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def find_circle(self, circle_id: str) -> Circle | None:
        for circle in self.circles:
            if circle.id == circle_id:
                return circle
        return None

    def find_meetup(self, meetup_id: str) -> Meetup | None:
        for meetup in self.meetups:
            if meetup.id == meetup_id:
                return meetup
        return None

    def to_dict(self) -> Dict[str, Any]:
        with self.lock:
            return {
                "users": {user_id: user.to_dict() for user_id, user in self.users.items()},
                "circles": [circle.to_dict() for circle in self.circles],
                "chats": {
                    circle_id: [message.to_dict() for message in messages]
                    for circle_id, messages in self.chats.items()
                },
                "meetups": [meetup.to_dict() for meetup in self.meetups],
            }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Community":
        """Build the aggregate from its JSON form; missing keys become empty collections."""

        if not isinstance(data, Mapping):
            raise ValueError("Community document must be a JSON object")

        users_raw = data.get("users") or {}
        chats_raw = data.get("chats") or {}
        return Community(
            users={str(user_id): User.from_dict(user_id, raw) for user_id, raw in users_raw.items()},
            circles=[Circle.from_dict(raw) for raw in data.get("circles") or []],
            chats={
                str(circle_id): [ChatMessage.from_dict(raw) for raw in messages or []]
                for circle_id, messages in chats_raw.items()
            },
            meetups=[Meetup.from_dict(raw) for raw in data.get("meetups") or []],
        )


__all__ = [
    "ChatMessage",
    "Circle",
    "Community",
    "DEFAULT_USER_NAME",
    "DEFAULT_USER_STATUS",
    "Meetup",
    "User",
]
