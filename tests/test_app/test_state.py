"""Tests for AppState transitions and stale-result handling."""

from reddit_desk.app.messages import (
    CommentsFailed,
    CommentsLoaded,
    CredentialsLoaded,
    CredentialsStored,
    ListingFailed,
    ListingLoaded,
    LoginSucceeded,
)
from reddit_desk.app.state import SESSION_ONLY_NOTICE, AppState, Status, describe_error
from reddit_desk.auth.credentials import Credentials
from reddit_desk.auth.store import StoreUnavailable
from reddit_desk.client.errors import AuthError, DecodeError, NetworkError
from reddit_desk.client.schemas import CommentTree

CREDS = Credentials("cid", "secret", "alice", "hunter2")


def _ready(listing) -> AppState:
    state = AppState()
    rid = state.begin_login(CREDS)
    state.apply(LoginSucceeded(rid, "alice", ["python"]))
    state.apply(ListingLoaded(rid, listing))
    return state


def test_starts_logged_out_with_settings_open():
    state = AppState()
    assert state.status is Status.LOGGED_OUT
    assert not state.logged_in
    assert state.show_settings


def test_login_then_listing_ready(listing_factory):
    state = _ready(listing_factory())

    assert state.status is Status.LISTING_READY
    assert state.username == "alice"
    assert state.subreddits == ["python"]
    assert not state.show_settings
    assert len(state.listing) == 2


def test_begin_listing_clears_listing_and_bumps_request_id(listing_factory):
    state = _ready(listing_factory())
    old = state.listing_request_id

    rid = state.begin_listing("rust", "new")

    assert rid == old + 1
    assert state.listing is None
    assert state.status is Status.LOADING_LISTING
    assert (state.feed, state.sort) == ("rust", "new")


def test_stale_listing_is_dropped(listing_factory):
    state = _ready(listing_factory())
    first = state.begin_listing("python")
    second = state.begin_listing("rust")

    assert not state.apply(ListingLoaded(first, listing_factory(feed="python")))
    assert state.listing is None
    assert state.apply(ListingLoaded(second, listing_factory(feed="rust")))
    assert state.listing.feed == "rust"


def test_stale_failure_does_not_clobber_ready_listing(listing_factory):
    state = _ready(listing_factory())
    stale = state.listing_request_id - 1
    assert not state.apply(ListingFailed(stale, NetworkError("boom")))
    assert state.status is Status.LISTING_READY
    assert state.error is None


def test_load_more_appends_under_same_request_id(listing_factory):
    state = _ready(listing_factory(ids=("a", "b"), after="t3_b"))
    rid = state.begin_more()

    assert state.is_loading and state.loading_more
    state.apply(ListingLoaded(rid, listing_factory(ids=("c",)), append=True))

    assert [p.id for p in state.listing.posts] == ["a", "b", "c"]
    assert not state.loading_more


def test_failed_load_more_keeps_existing_posts(listing_factory):
    state = _ready(listing_factory(ids=("a", "b"), after="t3_b"))
    rid = state.begin_more()
    state.apply(ListingFailed(rid, NetworkError("timeout"), action="more"))

    assert state.status is Status.LOADING_ERROR
    assert len(state.listing) == 2
    assert state.retry_action == "more"
    assert state.error.retryable


def test_auth_failure_reopens_settings():
    state = AppState()
    rid = state.begin_login(CREDS)
    state.apply(ListingFailed(rid, AuthError("invalid_grant"), action="login"))

    assert state.status is Status.LOADING_ERROR
    assert state.error.kind == "auth"
    assert "log in again" in state.error.message
    assert state.show_settings


def test_comments_loaded_and_stale_comments_dropped(listing_factory, post_factory):
    state = _ready(listing_factory())
    post = state.listing.posts[0]
    old = state.begin_comments(post)
    current = state.begin_comments(post)
    tree = CommentTree(post=post_factory(post.id))

    assert not state.apply(CommentsLoaded(old, tree))
    assert state.comments_loading
    assert state.apply(CommentsLoaded(current, tree))
    assert state.comments is tree
    assert not state.comments_loading


def test_comments_failure_keeps_post_and_listing(listing_factory):
    state = _ready(listing_factory())
    post = state.listing.posts[0]
    rid = state.begin_comments(post)

    state.apply(CommentsFailed(rid, DecodeError("bad tree")))

    assert state.selected_post is post
    assert state.comments is None
    assert state.comments_error.kind == "decode"
    assert not state.comments_error.retryable
    assert state.status is Status.LISTING_READY


def test_close_post_invalidates_inflight_comments(listing_factory, post_factory):
    state = _ready(listing_factory())
    rid = state.begin_comments(state.listing.posts[0])
    state.close_post()

    assert not state.apply(CommentsLoaded(rid, CommentTree(post=post_factory())))
    assert state.selected_post is None


def test_credentials_loaded_marks_persisted():
    state = AppState(startup_pending=True)
    state.apply(CredentialsLoaded(CREDS))
    assert state.credentials == CREDS
    assert state.persisted
    assert not state.startup_pending


def test_stored_credentials_ignored_after_manual_login():
    state = AppState(startup_pending=True)
    entered = Credentials("cid", "secret", "bob", "pw")
    state.begin_login(entered)

    assert not state.apply(CredentialsLoaded(CREDS))
    assert state.credentials == entered
    assert not state.persisted
    assert not state.startup_pending


def test_begin_login_carries_sort_and_remember():
    state = AppState()
    state.begin_login(CREDS, "python", "top", remember=True)
    assert (state.feed, state.sort, state.remember) == ("python", "top", True)

    state.logout()
    assert not state.remember


def test_store_failures_set_session_only_notice():
    state = AppState()
    state.apply(CredentialsLoaded(None, error=StoreUnavailable("locked")))
    assert state.notice == SESSION_ONLY_NOTICE

    state = AppState(persisted=True)
    state.apply(CredentialsStored(error=StoreUnavailable("locked")))
    assert not state.persisted
    assert state.notice == SESSION_ONLY_NOTICE


def test_logout_resets_account_and_invalidates_requests(listing_factory):
    state = _ready(listing_factory())
    rid = state.listing_request_id
    state.logout()

    assert state.status is Status.LOGGED_OUT
    assert state.credentials is None
    assert state.listing is None
    assert state.show_settings
    assert not state.apply(ListingLoaded(rid, listing_factory()))


def test_describe_error_kinds():
    assert describe_error(NetworkError("down")).kind == "network"
    assert describe_error(StoreUnavailable("x")).kind == "store"
    assert describe_error(RuntimeError("x")).kind == "unexpected"
    assert describe_error(NetworkError("gone", 404, retryable=False)).retryable is False
