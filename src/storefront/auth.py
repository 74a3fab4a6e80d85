"""Authentication session persistence and status publishing."""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable

from .config import DEFAULT_AUTH_POLL_INTERVAL
from .models import AuthSession, UserProfile
from .ports import IdentityProvider

logger = logging.getLogger(__name__)

Subscriber = Callable[[AuthSession], None]


class SessionStore:
    """
    Keeps the session token and user data in a local JSON file.

    The file is the source of truth: another process (a login page, the
    CLI) may write or remove it at any time, so the in-memory copy is
    re-read whenever the file changes.
    """

    def __init__(self, session_file: Path):
        """
        Initialize session store.

        Args:
            session_file: Path of the JSON file holding the token.
        """
        self.session_file = Path(session_file)
        self.token: str | None = None
        self.user: dict[str, Any] = {}
        self._signature: tuple[int, int] | None = None
        self._load_session()

    def _file_signature(self) -> tuple[int, int] | None:
        try:
            st = os.stat(self.session_file)
        except OSError:
            return None
        return (st.st_mtime_ns, st.st_size)

    def _load_session(self) -> None:
        """Load saved session from file; a missing or unreadable file means signed out."""
        self._signature = self._file_signature()
        token: str | None = None
        user: dict[str, Any] = {}
        if self._signature is not None:
            try:
                with open(self.session_file, encoding="utf-8") as f:
                    data = json.load(f)
                raw_token = data.get("token")
                if isinstance(raw_token, str) and raw_token.strip():
                    token = raw_token.strip()
                    user = data.get("user") or {}
            except (OSError, ValueError, AttributeError) as e:
                logger.warning(f"Could not load session: {e}")

        if token != self.token:
            if token:
                logger.info(f"Loaded session from {self.session_file}")
            else:
                logger.info("Stored session is gone")
        self.token = token
        self.user = user

    def refresh(self) -> None:
        """Re-read the session file if it changed since the last read."""
        if self._file_signature() != self._signature:
            self._load_session()

    @property
    def is_authenticated(self) -> bool:
        self.refresh()
        return bool(self.token)

    def save(self, token: str, user: dict[str, Any] | None = None) -> None:
        """Save the session token and user data to file."""
        self.token = token.strip()
        self.user = user or {}
        try:
            self.session_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.session_file, "w", encoding="utf-8") as f:
                json.dump({"token": token, "user": self.user}, f, indent=2)
            os.chmod(self.session_file, 0o600)
            self._signature = self._file_signature()
            logger.info(f"Session saved to {self.session_file}")
        except OSError as e:
            logger.error(f"Could not save session: {e}")

    def clear(self) -> None:
        """Clear session and delete file."""
        self.token = None
        self.user = {}
        try:
            self.session_file.unlink(missing_ok=True)
            self._signature = None
            logger.info("Session cleared")
        except OSError as e:
            logger.warning(f"Could not delete session file: {e}")


class AuthStatusPoller:
    """
    Single authority for the signed-in state.

    Consumers subscribe to AuthSession updates. Updates are pushed on login
    and logout events; start() adds a coarse periodic reconciliation against
    the local session. Each profile fetch carries a generation number and a
    result from an older generation is dropped, so a fetch that finishes
    after logout cannot bring the profile back.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        interval: float = DEFAULT_AUTH_POLL_INTERVAL,
    ):
        self.identity = identity
        self.interval = interval
        self.session = AuthSession()
        self._subscribers: list[Subscriber] = []
        self._generation = 0
        self._fetch_task: asyncio.Task | None = None
        self._poll_task: asyncio.Task | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    @property
    def profile(self) -> UserProfile | None:
        return self.session.profile

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for session changes.

        The callback is called once right away with the current session.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)
        self._notify_one(callback, self.session)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify_one(self, callback: Subscriber, session: AuthSession) -> None:
        try:
            callback(session)
        except Exception:
            logger.exception("Auth subscriber failed")

    def _publish(self, session: AuthSession) -> None:
        if session == self.session:
            return
        self.session = session
        for callback in list(self._subscribers):
            self._notify_one(callback, session)

    def _fetch_in_flight(self) -> bool:
        return self._fetch_task is not None and not self._fetch_task.done()

    def _cancel_fetch(self) -> None:
        if self._fetch_in_flight():
            self._fetch_task.cancel()
        self._fetch_task = None

    def reconcile(self) -> asyncio.Task | None:
        """
        Re-derive the signed-in flag from the local session.

        On a false -> true transition, or while signed in without a profile,
        a profile fetch is scheduled on the running loop.

        Returns:
            The scheduled fetch task, or None if no fetch was started.
        """
        was_authenticated = self.session.is_authenticated
        authenticated = self.identity.is_authenticated()

        if not authenticated:
            if was_authenticated:
                self._generation += 1
                self._cancel_fetch()
            self._publish(AuthSession())
            return None

        if not was_authenticated:
            self._generation += 1
            self._cancel_fetch()
            self._publish(AuthSession(is_authenticated=True))

        if self.session.profile is None and not self._fetch_in_flight():
            self._fetch_task = asyncio.get_running_loop().create_task(
                self._fetch_profile(self._generation)
            )
            return self._fetch_task
        return None

    def notify_login(self) -> asyncio.Task | None:
        """Push event from a completed login; same as an immediate reconcile."""
        return self.reconcile()

    async def _fetch_profile(self, generation: int) -> None:
        try:
            profile = await self.identity.fetch_profile()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Could not fetch user profile: {e}")
            return

        if generation != self._generation or not self.session.is_authenticated:
            logger.debug(f"Dropping stale profile from generation {generation}")
            return
        self._publish(AuthSession(is_authenticated=True, profile=profile))

    def logout(self) -> None:
        """Clear the local session and publish the signed-out state at once."""
        self._generation += 1
        self._cancel_fetch()
        self.identity.clear_session()
        self._publish(AuthSession())

    async def _run(self) -> None:
        while True:
            self.reconcile()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start periodic reconciliation on the running loop."""
        if self.running:
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Cancel periodic reconciliation and any in-flight profile fetch."""
        tasks = [t for t in (self._poll_task, self._fetch_task) if t is not None]
        self._poll_task = None
        self._fetch_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> "AuthStatusPoller":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()
