"""Tests for the click CLI with the client and keychain patched out."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from reddit_desk.auth.credentials import Credentials
from reddit_desk.auth.store import StoreUnavailable
from reddit_desk.cli import cli
from reddit_desk.client.errors import AuthError, NetworkError
from reddit_desk.client.schemas import Comment, CommentTree

CREDS = Credentials("cid", "secret", "alice", "hunter2")
WHEN = datetime(2025, 1, 1, tzinfo=UTC)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def store_cls():
    with patch("reddit_desk.cli.CredentialStore") as cls:
        cls.return_value.load.return_value = CREDS
        yield cls


@pytest.fixture
def client_cls():
    with patch("reddit_desk.cli.RedditClient") as cls:
        yield cls


def test_login_verifies_then_saves(runner, store_cls, client_cls):
    result = runner.invoke(
        cli,
        ["login", "--client-id", "cid", "--client-secret", "secret",
         "--username", "alice", "--password", "hunter2"],
    )
    assert result.exit_code == 0
    assert "u/alice" in result.output
    client_cls.return_value.authenticate.assert_called_once_with(CREDS)
    store_cls.return_value.save.assert_called_once_with(CREDS)


def test_login_rejected_does_not_save(runner, store_cls, client_cls):
    client_cls.return_value.authenticate.side_effect = AuthError("invalid_grant")
    result = runner.invoke(
        cli,
        ["login", "--client-id", "cid", "--client-secret", "secret",
         "--username", "alice", "--password", "wrong"],
    )
    assert result.exit_code == 1
    assert "invalid_grant" in result.output
    store_cls.return_value.save.assert_not_called()


def test_logout_reports_unavailable_keychain(runner, store_cls):
    store_cls.return_value.clear.side_effect = StoreUnavailable("locked")
    result = runner.invoke(cli, ["logout"])
    assert result.exit_code == 1
    assert "Keychain unavailable" in result.output


def test_feed_prints_posts_and_cursor(runner, store_cls, client_cls, listing_factory):
    client_cls.return_value.fetch_listing.return_value = listing_factory(feed="python", after="t3_b")
    result = runner.invoke(cli, ["feed", "r/python", "--sort", "new", "-n", "5"])

    assert result.exit_code == 0
    assert "Post a" in result.output
    assert "--after t3_b" in result.output
    request = client_cls.return_value.fetch_listing.call_args.args[0]
    assert (request.feed, request.sort, request.limit) == ("python", "new", 5)


def test_feed_without_stored_credentials(runner, store_cls, client_cls):
    store_cls.return_value.load.return_value = None
    result = runner.invoke(cli, ["feed"])
    assert result.exit_code == 1
    assert "reddit-desk login" in result.output
    client_cls.return_value.fetch_listing.assert_not_called()


def test_feed_network_error(runner, store_cls, client_cls):
    client_cls.return_value.fetch_listing.side_effect = NetworkError("timed out")
    result = runner.invoke(cli, ["feed"])
    assert result.exit_code == 1
    assert "timed out" in result.output


def test_feed_export_csv(runner, store_cls, client_cls, listing_factory, tmp_path):
    client_cls.return_value.fetch_listing.return_value = listing_factory()
    out = tmp_path / "posts.csv"
    result = runner.invoke(cli, ["feed", "--export", str(out)])
    assert result.exit_code == 0
    assert out.exists()


def test_comments_prints_indented_tree(runner, store_cls, client_cls, post_factory):
    nodes = (
        Comment("c1", "bob", "top level", 5, WHEN, 0, None, (1,)),
        Comment("c2", "carol", "a reply", 2, WHEN, 1, 0, ()),
    )
    tree = CommentTree(post=post_factory("p1"), nodes=nodes, roots=(0,))
    client = MagicMock()
    client.fetch_comments.return_value = tree
    client_cls.return_value = client

    result = runner.invoke(cli, ["comments", "t3_p1"])

    assert result.exit_code == 0
    client.fetch_comments.assert_called_once_with("p1")
    assert "u/bob [5]" in result.output
    assert "  u/carol [2]" in result.output
