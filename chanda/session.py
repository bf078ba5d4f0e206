"""
Per-browser session state and the FastAPI dependencies that expose it.

A browser is identified by the ``chanda_sid`` cookie (issued by the session
middleware in ``chanda/app.py``).  Its bearer token, once logged in, travels
in the HttpOnly ``chanda_token`` cookie.  Route handlers never read cookies
themselves; they declare the pieces they need:

    ctx: SessionContext = Depends(get_session_context)
    desk: ContributionDesk = Depends(get_desk)
    backend = Depends(get_backend)
    ctx: SessionContext = Depends(require_login)   # write screens
    form: dict = Depends(get_form)                 # posted fields
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import Depends, Request

from chanda.workflow import ContributionDesk

logger = logging.getLogger(__name__)

SESSION_COOKIE = "chanda_sid"
TOKEN_COOKIE = "chanda_token"

_CLEANUP_INTERVAL = 60.0


def new_session_id() -> str:
    return secrets.token_urlsafe(18)


@dataclass(frozen=True)
class SessionContext:
    """Who is making this request: session id plus bearer token, if any."""
    session_id: str
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)


class SessionRegistry:
    """In-memory map of session id -> ContributionDesk.

    Idle sessions are dropped after ``ttl`` seconds; if more than
    ``max_sessions`` remain, the least recently used are evicted.
    """

    def __init__(self, factory: Callable[[], ContributionDesk], ttl: float = 3600.0,
                 max_sessions: int = 1000, clock: Callable[[], float] = time.monotonic) -> None:
        self._factory = factory
        self._ttl = ttl
        self._max_sessions = max(1, max_sessions)
        self._clock = clock
        self._lock = threading.Lock()
        self._desks: dict[str, ContributionDesk] = {}
        self._last_seen: dict[str, float] = {}
        self._last_cleanup = clock()

    def __len__(self) -> int:
        return len(self._desks)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._desks

    def get(self, session_id: str) -> ContributionDesk:
        """Return the desk for *session_id*, creating it on first use."""
        with self._lock:
            now = self._clock()
            desk = self._desks.get(session_id)
            if desk is None or now - self._last_seen[session_id] > self._ttl:
                desk = self._factory()
                self._desks[session_id] = desk
            self._last_seen[session_id] = now
            self._cleanup(now)
            return desk

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._desks.pop(session_id, None)
            self._last_seen.pop(session_id, None)

    def _cleanup(self, now: float) -> None:
        """Remove expired sessions, then trim to ``max_sessions``."""
        if len(self._desks) <= self._max_sessions and now - self._last_cleanup < _CLEANUP_INTERVAL:
            return
        self._last_cleanup = now
        expired = [sid for sid, seen in self._last_seen.items() if now - seen > self._ttl]
        for sid in expired:
            del self._desks[sid]
            del self._last_seen[sid]
        if len(self._desks) > self._max_sessions:
            excess = len(self._desks) - self._max_sessions
            oldest = sorted(self._last_seen, key=self._last_seen.get)[:excess]
            for sid in oldest:
                del self._desks[sid]
                del self._last_seen[sid]
        if expired:
            logger.debug("Evicted %d idle sessions", len(expired))


class LoginRequired(Exception):
    """Raised by ``require_login``; the app redirects to the login page."""

    def __init__(self, next_url: str = "/") -> None:
        super().__init__(next_url)
        self.next_url = next_url


# ── Dependencies ──────────────────────────────────────────────────────────────

def get_backend(request: Request) -> Any:
    return request.app.state.backend


def get_config(request: Request) -> Any:
    return request.app.state.config


def get_session_context(request: Request) -> SessionContext:
    session_id = getattr(request.state, "session_id", None) or \
        request.cookies.get(SESSION_COOKIE) or new_session_id()
    return SessionContext(session_id=session_id, token=request.cookies.get(TOKEN_COOKIE) or None)


def get_desk(request: Request,
             ctx: SessionContext = Depends(get_session_context)) -> ContributionDesk:
    return request.app.state.sessions.get(ctx.session_id)


async def get_form(request: Request) -> dict[str, str]:
    """Posted form fields as a plain dict (last value wins)."""
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def require_login(request: Request,
                  ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not ctx.is_authenticated:
        raise LoginRequired(request.url.path)
    return ctx


def flash(request: Request, level: str, message: str) -> None:
    """Queue a notice for the next page this browser renders."""
    session_id = getattr(request.state, "session_id", None)
    if session_id:
        request.app.state.sessions.get(session_id).notify(level, message)
