"""Shared fixtures: deterministic executor, in-memory keychain, sample posts."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Executor, Future
from datetime import UTC, datetime

import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from reddit_desk.client.schemas import Listing, Post


class ManualExecutor(Executor):
    """Executor that runs submitted jobs only when the test says so."""

    def __init__(self) -> None:
        self.jobs: list[tuple[Future, Callable, tuple, dict]] = []

    def submit(self, fn, /, *args, **kwargs) -> Future:
        future: Future = Future()
        self.jobs.append((future, fn, args, kwargs))
        return future

    def start(self, index: int = 0) -> Callable[[], None]:
        """Mark a job as running (so it can no longer be cancelled); call the result to finish it."""
        future, fn, args, kwargs = self.jobs.pop(index)
        started = future.set_running_or_notify_cancel()

        def finish() -> None:
            if not started:
                return
            try:
                future.set_result(fn(*args, **kwargs))
            except BaseException as exc:  # noqa: BLE001
                future.set_exception(exc)

        return finish

    def run(self, index: int = 0) -> None:
        self.start(index)()

    def run_all(self) -> None:
        while self.jobs:
            self.run(0)


class MemoryKeyring(KeyringBackend):
    priority = 1  # type: ignore[assignment]

    def __init__(self) -> None:
        super().__init__()
        self.entries: dict[tuple[str, str], str] = {}

    def get_password(self, service, username):
        return self.entries.get((service, username))

    def set_password(self, service, username, password):
        self.entries[(service, username)] = password

    def delete_password(self, service, username):
        try:
            del self.entries[(service, username)]
        except KeyError:
            raise PasswordDeleteError("not found") from None


def make_post(pid: str = "abc123", **kwargs) -> Post:
    defaults = dict(
        id=pid,
        name=f"t3_{pid}",
        title=f"Post {pid}",
        author="testuser",
        subreddit="python",
        score=42,
        num_comments=3,
        created_utc=datetime(2025, 1, 1, tzinfo=UTC),
        url=f"https://example.com/{pid}",
        permalink=f"/r/python/comments/{pid}/",
    )
    defaults.update(kwargs)
    return Post(**defaults)


def make_listing(feed: str = "home", ids=("a", "b"), after: str | None = None) -> Listing:
    return Listing(feed=feed, sort="hot", posts=[make_post(i) for i in ids], after=after)


@pytest.fixture
def executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture
def memory_keyring() -> MemoryKeyring:
    return MemoryKeyring()


@pytest.fixture
def post_factory():
    return make_post


@pytest.fixture
def listing_factory():
    return make_listing
