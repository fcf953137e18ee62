"""
Controller between the render loop and the background workers.

Every public method runs on the UI thread: it updates ``AppState`` through
its ``begin_*`` commands, then submits a job to the worker pool. Jobs talk
to Reddit, the keychain and the image cache and report back by posting a
message on a queue; ``pump`` drains that queue once per frame.
"""

from __future__ import annotations

import queue
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor

from loguru import logger

from reddit_desk.app.messages import (
    CommentsFailed,
    CommentsLoaded,
    CredentialsLoaded,
    CredentialsStored,
    ListingFailed,
    ListingLoaded,
    LoginSucceeded,
    Message,
)
from reddit_desk.app.state import AppState, Status
from reddit_desk.auth.credentials import Credentials
from reddit_desk.auth.preferences import Preferences
from reddit_desk.auth.store import CredentialStore, StoreUnavailable
from reddit_desk.client.errors import AuthError, RedditError
from reddit_desk.client.reddit import RedditClient
from reddit_desk.client.schemas import FeedRequest
from reddit_desk.config import AppConfig, RedditConfig
from reddit_desk.images.cache import ImageCache


class AppController:
    """Owns the state, the worker pool and the message queue for one window."""

    def __init__(
        self,
        client: RedditClient | None = None,
        store: CredentialStore | None = None,
        images: ImageCache | None = None,
        config: AppConfig | None = None,
        reddit_config: RedditConfig | None = None,
        executor: Executor | None = None,
        preferences: Preferences | None = None,
    ) -> None:
        self._cfg = config or AppConfig()
        self._reddit_cfg = reddit_config or RedditConfig()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self._cfg.workers, thread_name_prefix="reddit"
        )
        self.client = client or RedditClient(self._reddit_cfg)
        self.store = store or CredentialStore(self._cfg)
        self.images = images or ImageCache(self._cfg)
        self.preferences = preferences or Preferences.load(self._cfg.preferences_path)

        self.state = AppState(
            dark_mode=self.preferences.dark_mode,
            feed=self.preferences.default_feed,
            sort=self.preferences.sort,
        )
        self._messages: queue.SimpleQueue[Message] = queue.SimpleQueue()
        self._pending: dict[str, Future] = {}
        # Bumped on logout; login jobs from an earlier session must not leave a token behind
        self._session = 0

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _post(self, message: Message) -> None:
        self._messages.put(message)

    def _submit(self, key: str, job: Callable[[], None]) -> None:
        """Run ``job`` in the pool, cancelling a not-yet-started job under ``key``."""
        previous = self._pending.get(key)
        if previous is not None and previous.cancel():
            logger.debug(f"Cancelled pending {key} job")
        self._pending[key] = self._executor.submit(self._guard(job))

    @staticmethod
    def _guard(job: Callable[[], None]) -> Callable[[], None]:
        def run() -> None:
            try:
                job()
            except Exception:  # noqa: BLE001
                # Jobs report their own failures; anything else is a bug
                logger.exception("Background job crashed")

        return run

    def _with_reauth(self, call: Callable[[], object], credentials: Credentials | None):
        """Run ``call``; on an expired token re-authenticate once and repeat it."""
        try:
            return call()
        except AuthError:
            if credentials is None:
                raise
            logger.info("Access token rejected; re-authenticating")
            self.client.authenticate(credentials)
            return call()

    def _feed_request(self, after: str | None = None) -> FeedRequest:
        return FeedRequest(
            feed=self.state.feed,
            sort=self.state.sort,
            after=after,
            limit=self._reddit_cfg.page_size,
        )

    # ------------------------------------------------------------------
    # Jobs (run on worker threads; only touch the client, store and queue)
    # ------------------------------------------------------------------

    def _load_credentials_job(self) -> None:
        try:
            credentials = self.store.load()
        except StoreUnavailable as exc:
            logger.warning(str(exc))
            self._post(CredentialsLoaded(credentials=None, error=exc))
            return
        self._post(CredentialsLoaded(credentials=credentials))

    def _save_credentials_job(self, credentials: Credentials) -> None:
        try:
            self.store.save(credentials)
        except StoreUnavailable as exc:
            logger.warning(str(exc))
            self._post(CredentialsStored(error=exc))
            return
        self._post(CredentialsStored())

    def _clear_credentials_job(self) -> None:
        try:
            self.store.clear()
        except StoreUnavailable as exc:
            logger.warning(str(exc))
            self._post(CredentialsStored(error=exc))

    def _login_job(
        self,
        session: int,
        request_id: int,
        credentials: Credentials,
        request: FeedRequest,
    ) -> None:
        try:
            self.client.authenticate(credentials)
        except RedditError as exc:
            logger.warning(f"Login failed: {exc.message}")
            self._post(ListingFailed(request_id, exc, action="login"))
            return
        if session != self._session:
            logger.info("Logged out while logging in; discarding the new token")
            self.client.clear_token()
            return

        try:
            subreddits = self.client.fetch_subscribed_subreddits()
        except RedditError as exc:
            logger.warning(f"Could not load subscriptions: {exc.message}")
            subreddits = []
        self._post(LoginSucceeded(request_id, credentials.username, subreddits))
        self._listing_job(request_id, request, credentials, append=False)

    def _listing_job(
        self,
        request_id: int,
        request: FeedRequest,
        credentials: Credentials | None,
        append: bool,
    ) -> None:
        try:
            listing = self._with_reauth(lambda: self.client.fetch_listing(request), credentials)
        except RedditError as exc:
            logger.warning(f"Fetching {request.path} failed: {exc.message}")
            self._post(ListingFailed(request_id, exc, action="more" if append else "listing"))
            return
        logger.info(f"Loaded {len(listing)} posts from {request.path}")
        self._post(ListingLoaded(request_id, listing, append=append))

    def _comments_job(self, request_id: int, post_id: str, credentials: Credentials | None) -> None:
        try:
            tree = self._with_reauth(lambda: self.client.fetch_comments(post_id), credentials)
        except RedditError as exc:
            logger.warning(f"Fetching comments for {post_id} failed: {exc.message}")
            self._post(CommentsFailed(request_id, exc))
            return
        self._post(CommentsLoaded(request_id, tree))

    # ------------------------------------------------------------------
    # Commands (UI thread)
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Read stored credentials; ``pump`` logs in once they arrive."""
        self.state.startup_pending = True
        self._submit("store", self._load_credentials_job)

    def login(self, credentials: Credentials, remember: bool = True) -> None:
        request_id = self.state.begin_login(credentials, remember=remember)
        self._submit_login(request_id, credentials)

    def _submit_login(self, request_id: int, credentials: Credentials) -> None:
        session = self._session
        request = self._feed_request()
        self._submit(
            "listing", lambda: self._login_job(session, request_id, credentials, request)
        )

    def logout(self) -> None:
        self._session += 1
        for key in ("listing", "comments"):
            pending = self._pending.get(key)
            if pending is not None:
                pending.cancel()
        self.state.logout()
        self.client.clear_token()
        self.images.clear()
        self._submit("store", self._clear_credentials_job)

    def navigate(self, feed: str, sort: str | None = None) -> None:
        if not self.state.logged_in:
            return
        credentials = self.state.credentials
        if not self.client.is_authenticated and credentials is not None:
            request_id = self.state.begin_login(
                credentials, feed, sort, remember=self.state.remember
            )
            self._submit_login(request_id, credentials)
            return
        request_id = self.state.begin_listing(feed, sort)
        request = self._feed_request()
        self._submit(
            "listing", lambda: self._listing_job(request_id, request, credentials, append=False)
        )

    def refresh(self) -> None:
        self.navigate(self.state.feed, self.state.sort)

    def load_more(self) -> None:
        listing = self.state.listing
        if self.state.is_loading or listing is None or not listing.has_more:
            return
        request_id = self.state.begin_more()
        request = self._feed_request(after=listing.after)
        credentials = self.state.credentials
        self._submit(
            "listing", lambda: self._listing_job(request_id, request, credentials, append=True)
        )

    def retry(self) -> None:
        """Repeat whatever left the state in ``LOADING_ERROR``."""
        action = self.state.retry_action
        credentials = self.state.credentials
        if self.state.status is not Status.LOADING_ERROR or action is None:
            return
        self.images.forget_failures()
        if action == "login" or (self.state.error and self.state.error.kind == "auth"):
            if credentials is not None:
                self.login(credentials, remember=self.state.remember)
            return
        if action == "more":
            self.load_more()
            return
        self.refresh()

    def open_post(self, post_id: str) -> None:
        post = self.state.listing.find(post_id) if self.state.listing else None
        if post is None:
            logger.warning(f"open_post: {post_id} is not in the active listing")
            return
        request_id = self.state.begin_comments(post)
        credentials = self.state.credentials
        self._submit("comments", lambda: self._comments_job(request_id, post.id, credentials))

    def close_post(self) -> None:
        self.state.close_post()
        pending = self._pending.get("comments")
        if pending is not None:
            pending.cancel()

    def set_dark_mode(self, enabled: bool) -> None:
        self.state.dark_mode = enabled
        self.preferences.dark_mode = enabled
        self._save_preferences()

    def set_sort(self, sort: str) -> None:
        self.state.sort = sort
        self.preferences.sort = sort
        self._save_preferences()
        self.navigate(self.state.feed, sort)

    def _save_preferences(self) -> None:
        try:
            self.preferences.save(self._cfg.preferences_path)
        except OSError as exc:
            logger.warning(f"Could not save preferences: {exc}")

    # ------------------------------------------------------------------
    # Frame hooks
    # ------------------------------------------------------------------

    def pump(self) -> int:
        """Apply every queued message; return how many changed the state."""
        applied = 0
        while True:
            try:
                message = self._messages.get_nowait()
            except queue.Empty:
                break
            if not self.state.apply(message):
                logger.debug(f"Dropped stale {type(message).__name__}")
                continue
            applied += 1
            if (
                isinstance(message, LoginSucceeded)
                and self.state.remember
                and not self.state.persisted
            ):
                credentials = self.state.credentials
                self._submit("store", lambda: self._save_credentials_job(credentials))
            if (
                isinstance(message, CredentialsLoaded)
                and message.credentials is not None
                and not self.state.logged_in
            ):
                self.login(message.credentials, remember=False)
        return applied

    @property
    def busy(self) -> bool:
        jobs = any(not f.done() for f in self._pending.values())
        return jobs or not self._messages.empty() or self.images.pending

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        self.images.shutdown()
