"""Save a listing as CSV or Parquet."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from reddit_desk.client.schemas import Listing


def listing_to_frame(listing: Listing) -> pd.DataFrame:
    df = pd.DataFrame(listing.to_records())
    if not df.empty:
        df["feed"] = listing.feed
        df["sort"] = listing.sort
    return df


def export_listing(listing: Listing, path: Path) -> Path:
    """Write ``listing`` to ``path``; the suffix picks the format."""
    df = listing_to_frame(listing)
    suffix = path.suffix.lower()
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".csv":
        df.to_csv(path, index=False)
    elif suffix == ".parquet":
        df.to_parquet(path, index=False)
    else:
        raise ValueError(f"Unsupported export format {suffix!r} (use .csv or .parquet)")
    return path
