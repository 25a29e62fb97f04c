"""Operations behind every HTTP route, applied to one explicitly owned community."""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from .identifiers import CIRCLE_ID_LENGTH, MEETUP_ID_LENGTH, MESSAGE_ID_LENGTH, generate_id
from .models import DEFAULT_USER_NAME, ChatMessage, Circle, Community, Meetup, User
from .seed import SeedTable, apply_seed, welcome_message
from .store import JSONStore

logger = logging.getLogger("huddle.service")

DEFAULT_CIRCLE_STATUS = "online"
DEFAULT_CIRCLE_INFO = "New circle"
DEFAULT_MEETUP_TOTAL = 6
ANONYMOUS_AUTHOR_ID = "anon"
ANONYMOUS_AUTHOR_NAME = "Anon"


def _now_ms() -> int:
    return int(time.time() * 1000)


class CommunityService:
    """Validates requests, mutates the community and schedules the flush.

    Client mistakes raise ``ValueError``; join requests against an unknown
    circle or meetup raise ``KeyError``. Every mutating call schedules exactly
    one debounced flush, including calls whose effect was a no-op.
    """

    def __init__(
        self,
        community: Community,
        store: JSONStore,
        *,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._community = community
        self._store = store
        self._clock = clock

    @classmethod
    def open(cls, store: JSONStore, *, seed_table: SeedTable | None = None) -> "CommunityService":
        """Load the community from ``store`` and seed it on first run."""

        service = cls(store.load(), store)
        if seed_table is not None:
            service.seed(seed_table)
        return service

    @property
    def community(self) -> Community:
        return self._community

    @property
    def store(self) -> JSONStore:
        return self._store

    def seed(self, table: SeedTable) -> bool:
        if not apply_seed(self._community, table, now_ms=self._clock()):
            return False
        self._store.flush_now(self._community)
        logger.info(
            "Seeded %d circle(s) and %d meetup(s)",
            len(self._community.circles),
            len(self._community.meetups),
        )
        return True

    def _touch(self) -> None:
        self._store.schedule_flush(self._community)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    def get_or_create_user(self, user_id: str, name: str = DEFAULT_USER_NAME) -> User:
        """Return the user for ``user_id``, creating it on first reference.

        The name only applies when the user is created.
        """

        with self._community.lock:
            user = self._community.users.get(user_id)
            if user is None:
                user = User(id=user_id, name=name)
                self._community.users[user_id] = user
                logger.info("Registered user %s", user_id)
                self._touch()
            return user

    def register_user(self, user_id: Optional[str], name: Optional[str] = None) -> User:
        if not user_id:
            raise ValueError("userId required")
        return self.get_or_create_user(user_id, name or DEFAULT_USER_NAME)

    # Reads below create the user as a side effect, like every other lookup by id.
    def get_status(self, user_id: str) -> User:
        return self.get_or_create_user(user_id)

    def set_status(self, user_id: str, status: Optional[str]) -> User:
        with self._community.lock:
            user = self.get_or_create_user(user_id)
            if status:
                user.status = status
            self._touch()
            return user

    def get_availability(self, user_id: str) -> User:
        return self.get_or_create_user(user_id)

    def set_availability(self, user_id: str, day: Optional[str], state: Optional[str]) -> User:
        with self._community.lock:
            user = self.get_or_create_user(user_id)
            if day is None or not state:
                raise ValueError("day and state required")
            user.availability[day] = state
            self._touch()
            return user

    # ------------------------------------------------------------------
    # Circles
    # ------------------------------------------------------------------
    def list_circles(self) -> List[Circle]:
        with self._community.lock:
            return list(self._community.circles)

    def create_circle(
        self,
        name: Optional[str],
        *,
        status: Optional[str] = None,
        info: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Circle:
        if not name:
            raise ValueError("name is required")

        with self._community.lock:
            circle = Circle(
                id=generate_id(CIRCLE_ID_LENGTH),
                name=name,
                status=DEFAULT_CIRCLE_STATUS if status is None else status,
                info=DEFAULT_CIRCLE_INFO if info is None else info,
            )
            if user_id:
                self.get_or_create_user(user_id)
                circle.add_member(user_id)
            self._community.circles.append(circle)
            self._community.chats[circle.id] = [welcome_message(name, self._clock())]
            self._touch()

        logger.info("Created circle %s (%s)", circle.id, circle.name)
        return circle

    def join_circle(self, circle_id: str, user_id: Optional[str]) -> Circle:
        with self._community.lock:
            circle = self._community.find_circle(circle_id)
            if circle is None:
                raise KeyError("circle not found")
            if user_id:
                self.get_or_create_user(user_id)
                if circle.add_member(user_id):
                    logger.info("User %s joined circle %s", user_id, circle_id)
                self._touch()
            return circle

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------
    def list_chat(self, circle_id: str) -> List[ChatMessage]:
        with self._community.lock:
            return list(self._community.chats.get(circle_id, []))

    def post_chat(
        self,
        circle_id: str,
        message: Optional[str],
        *,
        author_id: Optional[str] = None,
        author_name: Optional[str] = None,
    ) -> ChatMessage:
        if not message:
            raise ValueError("message required")

        with self._community.lock:
            messages = self._community.chats.setdefault(circle_id, [])
            ts = self._clock()
            if messages and messages[-1].ts > ts:
                ts = messages[-1].ts
            entry = ChatMessage(
                id=generate_id(MESSAGE_ID_LENGTH),
                author_id=author_id or ANONYMOUS_AUTHOR_ID,
                author_name=author_name or ANONYMOUS_AUTHOR_NAME,
                message=message,
                ts=ts,
            )
            messages.append(entry)
            self._touch()
            return entry

    # ------------------------------------------------------------------
    # Meetups
    # ------------------------------------------------------------------
    def list_meetups(self) -> List[Meetup]:
        with self._community.lock:
            return list(self._community.meetups)

    def create_meetup(
        self,
        title: Optional[str],
        *,
        details: Optional[str] = None,
        time: Optional[str] = None,
        total: Optional[int] = None,
    ) -> Meetup:
        if not title:
            raise ValueError("title required")
        capacity = DEFAULT_MEETUP_TOTAL if total is None else total
        if capacity < 0:
            raise ValueError("total must not be negative")

        with self._community.lock:
            meetup = Meetup(
                id=generate_id(MEETUP_ID_LENGTH),
                title=title,
                details=details or "",
                time=time or "",
                total=capacity,
            )
            self._community.meetups.append(meetup)
            self._touch()

        logger.info("Created meetup %s (%s, capacity %d)", meetup.id, meetup.title, meetup.total)
        return meetup

    def join_meetup(self, meetup_id: str, user_id: Optional[str]) -> Meetup:
        """Add ``user_id`` to the meetup; full meetups and repeat joins are silently ignored."""

        with self._community.lock:
            meetup = self._community.find_meetup(meetup_id)
            if meetup is None:
                raise KeyError("meetup not found")
            if user_id and meetup.add_attendee(user_id):
                logger.info("User %s joined meetup %s", user_id, meetup_id)
            self._touch()
            return meetup


__all__ = ["CommunityService"]
