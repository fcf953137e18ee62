"""Tests for listing export."""

import pandas as pd
import pytest

from reddit_desk.export import export_listing, listing_to_frame


def test_listing_to_frame_adds_feed_and_sort(listing_factory):
    df = listing_to_frame(listing_factory(feed="python"))
    assert list(df["id"]) == ["a", "b"]
    assert set(df["feed"]) == {"python"}
    assert set(df["sort"]) == {"hot"}


def test_export_csv(tmp_path, listing_factory):
    out = export_listing(listing_factory(), tmp_path / "out" / "posts.csv")
    df = pd.read_csv(out)
    assert len(df) == 2
    assert "title" in df.columns


def test_unsupported_suffix_raises(tmp_path, listing_factory):
    with pytest.raises(ValueError, match="Unsupported"):
        export_listing(listing_factory(), tmp_path / "posts.xlsx")
