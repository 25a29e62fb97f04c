"""Flat-file JSON persistence with debounced write-through."""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from .models import Community

logger = logging.getLogger("huddle.store")

DEFAULT_FLUSH_DELAY = 0.150


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


class DebouncedTask:
    """Run ``callback`` once, ``delay`` seconds after the first of a burst of triggers.

    At most one run is pending at a time. Triggers that arrive while a run is
    pending are absorbed by it. The pending marker is cleared when the timer
    fires, before ``callback`` starts, so a trigger during the run schedules
    the next one.
    """

    def __init__(self, callback: Callable[[], None], delay: float) -> None:
        if delay < 0:
            raise ValueError("Debounce delay must not be negative")
        self._callback = callback
        self._delay = delay
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self) -> bool:
        """Arm the timer unless one is already armed. Returns ``True`` when armed."""

        with self._lock:
            if self._timer is not None:
                return False
            timer = threading.Timer(self._delay, self._fire)
            self._timer = timer
        timer.start()
        return True

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        try:
            self._callback()
        except Exception:  # pragma: no cover - the timer thread has no caller to report to
            logger.exception("Debounced task failed")


class JSONStore:
    """Owns the on-disk JSON document holding the whole :class:`Community`."""

    def __init__(self, path: Path, *, flush_delay: float = DEFAULT_FLUSH_DELAY) -> None:
        self._path = path
        self._write_lock = threading.Lock()
        self._target: Optional[Community] = None
        self._flush = DebouncedTask(self._flush_target, flush_delay)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def flush_pending(self) -> bool:
        return self._flush.pending

    def load(self) -> Community:
        """Read the document, or return an empty community if it cannot be used."""

        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No data file at %s; starting with an empty community", self._path)
            return Community()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Unable to read data file %s: %s", self._path, exc)
            return Community()

        try:
            community = Community.from_dict(json.loads(raw))
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.warning("Ignoring malformed data file %s: %s", self._path, exc)
            return Community()

        logger.info(
            "Loaded %d user(s), %d circle(s) and %d meetup(s) from %s",
            len(community.users),
            len(community.circles),
            len(community.meetups),
            self._path,
        )
        return community

    def schedule_flush(self, community: Community) -> bool:
        """Request a deferred write of ``community``; bursts collapse into one write."""

        self._target = community
        return self._flush.schedule()

    def flush_now(self, community: Community) -> None:
        """Write ``community`` immediately on the calling thread."""

        self._write(community)

    def _flush_target(self) -> None:
        community = self._target
        if community is None:
            return
        self._write(community)

    def _write(self, community: Community) -> None:
        document = json.dumps(community.to_dict(), indent=2, ensure_ascii=False)
        with self._write_lock:
            _ensure_directory(self._path)
            self._path.write_text(document, encoding="utf-8")
        logger.debug("Flushed community state to %s", self._path)


__all__ = ["DEFAULT_FLUSH_DELAY", "DebouncedTask", "JSONStore"]
