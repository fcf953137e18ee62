"""Dataclasses for Reddit posts, listings and comment trees."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime

HOME_FEED = "home"
SORTS = ("hot", "new", "top", "rising")


@dataclass(frozen=True)
class Post:
    """A single Reddit post (submission) as shown on a card."""

    id: str
    name: str
    title: str
    author: str
    subreddit: str
    score: int
    num_comments: int
    created_utc: datetime
    url: str
    permalink: str
    is_self: bool = False
    selftext: str = ""
    thumbnail: str = ""
    # Best-fit preview image, already unescaped
    preview_url: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "title": self.title,
            "author": self.author,
            "subreddit": self.subreddit,
            "score": self.score,
            "num_comments": self.num_comments,
            "created_utc": self.created_utc,
            "url": self.url,
            "permalink": self.permalink,
            "is_self": self.is_self,
            "selftext": self.selftext,
            "thumbnail": self.thumbnail,
            "preview_url": self.preview_url,
        }


@dataclass(frozen=True)
class FeedRequest:
    """What to fetch: a feed, its sort order and the page cursor."""

    feed: str = HOME_FEED
    sort: str = "hot"
    after: str | None = None
    limit: int = 25

    @property
    def path(self) -> str:
        if self.feed == HOME_FEED:
            return f"/{self.sort}"
        return f"/r/{self.feed}/{self.sort}"

    def next_page(self, after: str) -> FeedRequest:
        return FeedRequest(feed=self.feed, sort=self.sort, after=after, limit=self.limit)


@dataclass
class Listing:
    """An ordered page (or run of pages) of posts from one feed."""

    feed: str
    sort: str
    posts: list[Post] = field(default_factory=list)
    after: str | None = None

    def __len__(self) -> int:
        return len(self.posts)

    @property
    def has_more(self) -> bool:
        return bool(self.after)

    def find(self, post_id: str) -> Post | None:
        for post in self.posts:
            if post.id == post_id:
                return post
        return None

    def with_page(self, page: Listing) -> Listing:
        """Return a new listing with ``page`` appended, skipping posts already shown."""
        seen = {p.id for p in self.posts}
        merged = list(self.posts) + [p for p in page.posts if p.id not in seen]
        return Listing(feed=self.feed, sort=self.sort, posts=merged, after=page.after)

    def to_records(self) -> list[dict]:
        return [post.to_dict() for post in self.posts]


@dataclass(frozen=True)
class Comment:
    """One node of a comment tree; ``parent`` and ``children`` are arena indices."""

    id: str
    author: str
    body: str
    score: int
    created_utc: datetime
    depth: int = 0
    parent: int | None = None
    children: tuple[int, ...] = ()


@dataclass(frozen=True)
class CommentTree:
    """Comments of a post stored as an index arena.

    ``nodes`` holds every comment; ``roots`` lists the indices of top-level
    comments in display order. Nodes reference each other by index only.
    """

    post: Post
    nodes: tuple[Comment, ...] = ()
    roots: tuple[int, ...] = ()
    # "load more comments" stubs left unexpanded
    more_count: int = 0

    def __len__(self) -> int:
        return len(self.nodes)

    def children(self, index: int) -> list[Comment]:
        return [self.nodes[i] for i in self.nodes[index].children]

    def get(self, comment_id: str) -> Comment | None:
        for node in self.nodes:
            if node.id == comment_id:
                return node
        return None

    def walk(self) -> Iterator[tuple[int, Comment]]:
        """Yield ``(index, comment)`` depth-first in display order."""
        stack = list(reversed(self.roots))
        while stack:
            index = stack.pop()
            node = self.nodes[index]
            yield index, node
            stack.extend(reversed(node.children))
