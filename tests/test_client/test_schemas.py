"""Tests for Post, FeedRequest and Listing dataclasses."""

import dataclasses

import pytest

from reddit_desk.client.schemas import FeedRequest, Listing


def test_post_is_immutable(post_factory):
    post = post_factory()
    with pytest.raises(dataclasses.FrozenInstanceError):
        post.score = 1


def test_post_to_dict_has_all_card_fields(post_factory):
    d = post_factory(preview_url="https://i/x.jpg").to_dict()
    for key in ("id", "title", "author", "subreddit", "score", "num_comments", "preview_url"):
        assert key in d


def test_feed_request_paths():
    assert FeedRequest().path == "/hot"
    assert FeedRequest(feed="python", sort="top").path == "/r/python/top"


def test_feed_request_next_page_keeps_feed_and_sort():
    req = FeedRequest(feed="python", sort="new", limit=10)
    nxt = req.next_page("t3_zz")
    assert (nxt.feed, nxt.sort, nxt.after, nxt.limit) == ("python", "new", "t3_zz", 10)


def test_with_page_appends_skips_duplicates_and_moves_cursor(listing_factory):
    first = listing_factory(ids=("a", "b"), after="t3_b")
    page = listing_factory(ids=("b", "c"), after="t3_c")

    merged = first.with_page(page)

    assert [p.id for p in merged.posts] == ["a", "b", "c"]
    assert merged.after == "t3_c"
    # first page untouched
    assert [p.id for p in first.posts] == ["a", "b"]


def test_listing_has_more_and_find(listing_factory):
    listing = listing_factory(ids=("a",), after=None)
    assert not listing.has_more
    assert listing.find("a").id == "a"
    assert listing.find("zzz") is None
    assert len(Listing(feed="home", sort="hot")) == 0
