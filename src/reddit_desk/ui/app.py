"""Streamlit window for reddit-desk.

Run with:
    reddit-desk ui
    # or directly:
    streamlit run src/reddit_desk/ui/app.py

Every script run is one frame: drain finished background work into the
state, draw the state, and while anything is still in flight sleep briefly
and rerun so results appear without further input.
"""

from __future__ import annotations

import sys
import time
from pathlib import Path

# Make the reddit_desk package importable when run directly by Streamlit
# (without a pip-installed editable install)
_SRC = Path(__file__).parent.parent.parent  # .../src/
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import streamlit as st  # noqa: E402

from reddit_desk.app.controller import AppController  # noqa: E402
from reddit_desk.app.state import AppState, Status  # noqa: E402
from reddit_desk.auth.credentials import Credentials  # noqa: E402
from reddit_desk.client.schemas import HOME_FEED, SORTS, CommentTree, Post  # noqa: E402
from reddit_desk.config import APP_NAME, APP_VERSION, app_config  # noqa: E402
from reddit_desk.utils.logging import setup_logging  # noqa: E402

# ---------------------------------------------------------------------------
# Page config (must be first Streamlit call)
# ---------------------------------------------------------------------------

st.set_page_config(page_title=APP_NAME, page_icon="🗞️", layout="centered")

_CARD_FILL = {True: "rgb(20, 20, 20)", False: "rgb(240, 240, 240)"}


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


def _poll() -> None:
    """Wait for background work, then start the next frame."""
    time.sleep(app_config.poll_interval)
    st.rerun()


def _controller() -> AppController:
    if "controller" not in st.session_state:
        setup_logging()
        controller = AppController(config=app_config)
        controller.start()
        st.session_state.controller = controller
    return st.session_state.controller


def _theme(dark_mode: bool) -> None:
    fill = _CARD_FILL[dark_mode]
    text = "#e6e6e6" if dark_mode else "#1a1a1a"
    background = "#0e0e0e" if dark_mode else "#ffffff"
    st.markdown(
        f"""
        <style>
        .stApp {{ background-color: {background}; color: {text}; }}
        div[data-testid="stVerticalBlockBorderWrapper"] {{ background-color: {fill}; }}
        </style>
        """,
        unsafe_allow_html=True,
    )


# ---------------------------------------------------------------------------
# Header and navigation
# ---------------------------------------------------------------------------


def _header(ctl: AppController) -> None:
    state = ctl.state
    title, version, refresh, settings = st.columns([6, 1, 1, 1], vertical_alignment="center")
    title.markdown(f"## {APP_NAME}")
    version.caption(f"v{APP_VERSION}")
    refresh.button(
        "⟳",
        help="Refresh",
        disabled=not state.logged_in or state.show_settings or state.is_loading,
        on_click=ctl.refresh,
    )

    def toggle_settings() -> None:
        state.show_settings = not state.show_settings

    settings.button("⚙", help="Settings", disabled=state.credentials is None, on_click=toggle_settings)


def _nav_bar(ctl: AppController) -> None:
    state = ctl.state
    feeds = [HOME_FEED, *state.subreddits]
    cols = st.columns([5, 1], vertical_alignment="center")
    with cols[0]:
        choice = st.pills(
            "Feeds",
            options=feeds,
            format_func=lambda name: f"/r/{name}",
            default=state.feed if state.feed in feeds else None,
            label_visibility="collapsed",
            disabled=state.is_loading,
            key=f"feeds-{state.listing_request_id}",
        )
    with cols[1]:
        sort = st.selectbox(
            "Sort",
            SORTS,
            index=SORTS.index(state.sort) if state.sort in SORTS else 0,
            label_visibility="collapsed",
            disabled=state.is_loading,
        )

    if choice and choice != state.feed:
        ctl.navigate(choice)
        st.rerun()
    if sort != state.sort:
        ctl.set_sort(sort)
        st.rerun()
    st.divider()


def _banners(ctl: AppController) -> None:
    state = ctl.state
    if state.notice:
        st.warning(state.notice)
    if state.error is None:
        return
    st.error(state.error.message)
    if state.error.retryable and state.credentials is not None:
        label = "Log in again" if state.error.kind == "auth" else "Retry"
        st.button(label, on_click=ctl.retry)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def _settings(ctl: AppController) -> None:
    state = ctl.state
    first_run = state.credentials is None
    current = state.credentials or Credentials("", "", "", "")

    with st.container(border=True):
        if first_run:
            st.subheader(f"Welcome to {APP_NAME}!")
            st.write("To get started, please enter your Reddit API credentials:")

        theme = st.radio(
            "Theme",
            ["Light", "Dark"],
            index=1 if state.dark_mode else 0,
            horizontal=True,
        )
        if (theme == "Dark") != state.dark_mode:
            ctl.set_dark_mode(theme == "Dark")
            st.rerun()

        with st.form("credentials"):
            client_id = st.text_input("Client ID", value=current.client_id)
            client_secret = st.text_input("Client Secret", value=current.client_secret, type="password")
            username = st.text_input("Username", value=current.username)
            password = st.text_input("Password", value=current.password, type="password")
            remember = st.checkbox("Remember me (store in the system keychain)", value=True)

            if first_run:
                st.markdown(
                    "You can get your Reddit API credentials by:\n"
                    "1. Going to https://www.reddit.com/prefs/apps\n"
                    "2. Scrolling to the bottom and clicking 'create another app...'\n"
                    "3. Selecting 'script' and filling in the required information"
                )

            save, cancel = st.columns([1, 1])
            saved = save.form_submit_button("Save", type="primary")
            cancelled = cancel.form_submit_button("Cancel", disabled=first_run)

        if saved:
            credentials = Credentials(client_id.strip(), client_secret.strip(), username.strip(), password)
            if not credentials.is_complete():
                st.error("All four fields are required.")
                return
            ctl.login(credentials, remember=remember)
            st.rerun()
        if cancelled:
            state.show_settings = False
            st.rerun()

        if state.logged_in:
            st.button("Log out", on_click=ctl.logout)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def _post_card(ctl: AppController, post: Post, with_comments_button: bool = True) -> None:
    with st.container(border=True):
        thumb, body = st.columns([1, 5]) if post.preview_url else (None, st.container())
        if thumb is not None:
            image = ctl.images.peek(post.preview_url)
            if image is not None:
                thumb.image(image.image, width=min(image.width, 100))
        with body:
            st.markdown(f"**[{post.title}]({post.url or 'https://www.reddit.com' + post.permalink})**")
            st.caption(f"Posted by u/{post.author} in r/{post.subreddit}")
            st.caption(f"Score: {post.score}")
            if with_comments_button:
                st.button(
                    f"💬 {post.num_comments} comments",
                    key=f"open-{post.id}",
                    on_click=ctl.open_post,
                    args=(post.id,),
                )


def _listing(ctl: AppController) -> None:
    state = ctl.state
    listing = state.listing

    if listing is None:
        if state.status is Status.LOADING_LISTING:
            _, middle, _ = st.columns([1, 2, 1])
            with middle, st.spinner("Loading posts..."):
                _poll()
        return

    if not listing.posts:
        st.markdown("#### No posts found.")
        return

    for post in listing.posts:
        _post_card(ctl, post)

    if state.loading_more:
        st.caption("Loading more posts...")
    elif listing.has_more and state.status is not Status.LOADING_ERROR:
        st.button("Load more", on_click=ctl.load_more, use_container_width=True)


def _comment_tree(tree: CommentTree) -> None:
    if not tree.nodes:
        st.info("No comments yet.")
        return
    for _, comment in tree.walk():
        pad = min(comment.depth, 8)
        _, body = st.columns([pad + 0.01, 40 - pad]) if pad else (None, st.container())
        with body:
            st.caption(f"u/{comment.author} · {comment.score} points")
            st.markdown(comment.body)
    if tree.more_count:
        st.caption(f"{tree.more_count} more threads not loaded")


def _post_view(ctl: AppController) -> None:
    state = ctl.state
    st.button("← Back", on_click=ctl.close_post)
    _post_card(ctl, state.selected_post, with_comments_button=False)
    if state.selected_post.selftext:
        st.markdown(state.selected_post.selftext)
    st.divider()

    if state.comments_loading:
        st.info("Loading comments...", icon="⏳")
    elif state.comments_error is not None:
        st.error(state.comments_error.message)
        if state.comments_error.retryable:
            st.button("Retry", on_click=ctl.open_post, args=(state.selected_post.id,))
    elif state.comments is not None:
        _comment_tree(state.comments)


# ---------------------------------------------------------------------------
# Frame
# ---------------------------------------------------------------------------


def _frame(ctl: AppController) -> None:
    ctl.pump()
    state: AppState = ctl.state

    _theme(state.dark_mode)
    _header(ctl)

    if state.logged_in and not state.show_settings:
        _nav_bar(ctl)

    _banners(ctl)

    if state.startup_pending:
        st.caption("Reading saved credentials...")
    elif state.show_settings or not state.logged_in:
        _settings(ctl)
    elif state.selected_post is not None:
        _post_view(ctl)
    else:
        _listing(ctl)


ctl = _controller()
_frame(ctl)

if ctl.busy:
    _poll()
