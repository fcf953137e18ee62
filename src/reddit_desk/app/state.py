"""
Application state for the browser window.

``AppState`` is owned by the UI thread. Background jobs never touch it;
they post messages (``reddit_desk.app.messages``) that the UI thread feeds
to ``AppState.apply`` once per frame. Listing and comment messages carry
the request id they were issued under and are dropped when a newer request
has replaced them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

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
from reddit_desk.auth.credentials import Credentials
from reddit_desk.auth.store import StoreUnavailable
from reddit_desk.client.errors import AuthError, DecodeError, NetworkError, RedditError
from reddit_desk.client.schemas import HOME_FEED, CommentTree, Listing, Post

SESSION_ONLY_NOTICE = (
    "The system keychain is unavailable; you are logged in for this session only."
)


class Status(str, Enum):
    LOGGED_OUT = "logged_out"
    LOADING_LISTING = "loading_listing"
    LISTING_READY = "listing_ready"
    LOADING_ERROR = "loading_error"


@dataclass(frozen=True)
class ErrorBanner:
    kind: str  # "auth", "network", "decode", "store" or "unexpected"
    message: str
    retryable: bool


def describe_error(exc: Exception) -> ErrorBanner:
    """Map an exception to the banner shown above the listing."""
    if isinstance(exc, AuthError):
        return ErrorBanner("auth", f"Authentication error: {exc.message}. Please log in again.", True)
    if isinstance(exc, NetworkError):
        return ErrorBanner("network", f"Network error: {exc.message}", exc.retryable)
    if isinstance(exc, DecodeError):
        return ErrorBanner("decode", f"Reddit sent a response we could not read: {exc.message}", False)
    if isinstance(exc, RedditError):
        return ErrorBanner("network", exc.message, exc.retryable)
    if isinstance(exc, StoreUnavailable):
        return ErrorBanner("store", f"Keychain error: {exc}", False)
    return ErrorBanner("unexpected", f"Unexpected error: {exc}", True)


@dataclass
class AppState:
    status: Status = Status.LOGGED_OUT

    # Account
    credentials: Credentials | None = None
    username: str | None = None
    persisted: bool = False
    # Store the credentials once the login they were entered with succeeds
    remember: bool = False
    startup_pending: bool = False

    # Active listing
    feed: str = HOME_FEED
    sort: str = "hot"
    listing: Listing | None = None
    listing_request_id: int = 0
    loading_more: bool = False
    subreddits: list[str] = field(default_factory=list)

    # Errors and notices
    error: ErrorBanner | None = None
    retry_action: str | None = None
    notice: str | None = None

    # Post view
    selected_post: Post | None = None
    comments: CommentTree | None = None
    comments_loading: bool = False
    comments_error: ErrorBanner | None = None
    comments_request_id: int = 0

    # View
    show_settings: bool = True
    dark_mode: bool = True

    # ------------------------------------------------------------------
    # Commands issued on the UI thread; each returns the request id to tag
    # the background job with.
    # ------------------------------------------------------------------

    def begin_login(
        self,
        credentials: Credentials,
        feed: str | None = None,
        sort: str | None = None,
        remember: bool = False,
    ) -> int:
        self.credentials = credentials
        self.remember = remember
        return self.begin_listing(feed or self.feed, sort)

    def begin_listing(self, feed: str, sort: str | None = None) -> int:
        self.feed = feed
        if sort:
            self.sort = sort
        self.listing = None
        self.loading_more = False
        self.status = Status.LOADING_LISTING
        self.error = None
        self.retry_action = None
        self.close_post()
        self.listing_request_id += 1
        return self.listing_request_id

    def begin_more(self) -> int:
        self.loading_more = True
        self.status = Status.LOADING_LISTING
        self.error = None
        self.retry_action = None
        return self.listing_request_id

    def begin_comments(self, post: Post) -> int:
        self.selected_post = post
        self.comments = None
        self.comments_error = None
        self.comments_loading = True
        self.comments_request_id += 1
        return self.comments_request_id

    def close_post(self) -> None:
        self.selected_post = None
        self.comments = None
        self.comments_error = None
        self.comments_loading = False
        # Invalidate any comment fetch still in flight
        self.comments_request_id += 1

    def logout(self) -> None:
        self.close_post()
        self.status = Status.LOGGED_OUT
        self.credentials = None
        self.username = None
        self.persisted = False
        self.remember = False
        self.listing = None
        self.loading_more = False
        self.subreddits = []
        self.error = None
        self.retry_action = None
        self.notice = None
        self.show_settings = True
        self.feed = HOME_FEED
        self.listing_request_id += 1

    # ------------------------------------------------------------------
    # Message handling
    # ------------------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self.status is Status.LOADING_LISTING

    @property
    def logged_in(self) -> bool:
        return self.status is not Status.LOGGED_OUT

    def apply(self, message: Message) -> bool:
        """Apply one background result; return False when it was stale and dropped."""
        handler = _HANDLERS.get(type(message))
        if handler is None:
            raise TypeError(f"Unknown message {type(message).__name__}")
        return handler(self, message)

    def _on_credentials_loaded(self, msg: CredentialsLoaded) -> bool:
        self.startup_pending = False
        if msg.error is not None:
            self.notice = SESSION_ONLY_NOTICE
        if self.logged_in or self.credentials is not None:
            # A login entered by hand while the keychain was being read wins
            return False
        if msg.credentials is not None:
            self.credentials = msg.credentials
            self.persisted = True
        return True

    def _on_credentials_stored(self, msg: CredentialsStored) -> bool:
        if msg.error is None:
            self.persisted = self.logged_in
            return True
        self.persisted = False
        self.notice = SESSION_ONLY_NOTICE
        return True

    def _on_login_succeeded(self, msg: LoginSucceeded) -> bool:
        if msg.request_id != self.listing_request_id:
            return False
        self.username = msg.username
        self.subreddits = list(msg.subreddits)
        self.show_settings = False
        return True

    def _on_listing_loaded(self, msg: ListingLoaded) -> bool:
        if msg.request_id != self.listing_request_id:
            return False
        if msg.append and self.listing is not None:
            self.listing = self.listing.with_page(msg.listing)
        else:
            self.listing = msg.listing
        self.status = Status.LISTING_READY
        self.loading_more = False
        self.error = None
        self.retry_action = None
        return True

    def _on_listing_failed(self, msg: ListingFailed) -> bool:
        if msg.request_id != self.listing_request_id:
            return False
        self.status = Status.LOADING_ERROR
        self.loading_more = False
        self.error = describe_error(msg.error)
        self.retry_action = msg.action
        if self.error.kind == "auth":
            self.show_settings = True
        return True

    def _on_comments_loaded(self, msg: CommentsLoaded) -> bool:
        if msg.request_id != self.comments_request_id:
            return False
        self.comments = msg.tree
        self.comments_loading = False
        self.comments_error = None
        return True

    def _on_comments_failed(self, msg: CommentsFailed) -> bool:
        if msg.request_id != self.comments_request_id:
            return False
        self.comments = None
        self.comments_loading = False
        self.comments_error = describe_error(msg.error)
        return True


_HANDLERS = {
    CredentialsLoaded: AppState._on_credentials_loaded,
    CredentialsStored: AppState._on_credentials_stored,
    LoginSucceeded: AppState._on_login_succeeded,
    ListingLoaded: AppState._on_listing_loaded,
    ListingFailed: AppState._on_listing_failed,
    CommentsLoaded: AppState._on_comments_loaded,
    CommentsFailed: AppState._on_comments_failed,
}
