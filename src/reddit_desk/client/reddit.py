"""Requests-based client for Reddit's OAuth JSON API."""

from __future__ import annotations

from datetime import UTC, datetime

import requests
from loguru import logger

from reddit_desk.auth.credentials import Credentials
from reddit_desk.client.errors import AuthError, DecodeError, NetworkError
from reddit_desk.client.schemas import Comment, CommentTree, FeedRequest, Listing, Post
from reddit_desk.config import RedditConfig

_AUTH_STATUSES = (401, 403)


def _unescape(url: str) -> str:
    return url.replace("&amp;", "&")


def _pick_preview(data: dict, target_height: int) -> str | None:
    """Choose the preview resolution closest to ``target_height``.

    Falls back to the first resolution, then the source image, then the
    thumbnail when it is a real URL (Reddit uses "self", "default" etc.).
    """
    images = (data.get("preview") or {}).get("images") or []
    if images:
        image = images[0]
        resolutions = image.get("resolutions") or []
        best = None
        if resolutions:
            best = min(resolutions, key=lambda res: abs(res.get("height", 0) - target_height))
        best = best or image.get("source")
        if best and best.get("url"):
            return _unescape(best["url"])

    thumbnail = data.get("thumbnail") or ""
    if thumbnail.startswith("http"):
        return _unescape(thumbnail)
    return None


def _parse_post_json(data: dict, target_height: int = 100) -> Post:
    return Post(
        id=data["id"],
        name=data.get("name") or f"t3_{data['id']}",
        title=data.get("title") or "",
        author=data.get("author") or "[deleted]",
        subreddit=data.get("subreddit") or "",
        score=data.get("score", 0),
        num_comments=data.get("num_comments", 0),
        created_utc=datetime.fromtimestamp(data.get("created_utc", 0), tz=UTC),
        url=data.get("url") or "",
        permalink=data.get("permalink") or "",
        is_self=data.get("is_self", False),
        selftext=data.get("selftext") or "",
        thumbnail=data.get("thumbnail") or "",
        preview_url=_pick_preview(data, target_height),
    )


def _parse_listing_json(payload: dict, request: FeedRequest, target_height: int = 100) -> Listing:
    """Turn a ``{"kind": "Listing", "data": {...}}`` payload into a Listing."""
    try:
        data = payload["data"]
        posts = [
            _parse_post_json(child["data"], target_height)
            for child in data["children"]
            if child.get("kind", "t3") == "t3"
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise DecodeError(f"Malformed listing response: {exc!r}") from exc
    return Listing(feed=request.feed, sort=request.sort, posts=posts, after=data.get("after"))


def _parse_comment_tree(payload: list, target_height: int = 100) -> CommentTree:
    """Build an arena-indexed tree from the two-element comments payload.

    ``payload`` is ``[post_listing, comment_listing]``. Replies are nested
    listings, or ``""`` when a comment has none.
    """
    nodes: list[Comment] = []
    more_count = 0

    def visit(children: list, parent: int | None, depth: int) -> list[int]:
        nonlocal more_count
        indices: list[int] = []
        for child in children:
            kind = child.get("kind")
            if kind == "more":
                more_count += 1
                continue
            if kind != "t1":
                continue
            data = child["data"]
            index = len(nodes)
            # Reserve the slot first so indices follow display order
            nodes.append(None)  # type: ignore[arg-type]
            replies = data.get("replies")
            reply_children = replies["data"]["children"] if isinstance(replies, dict) else []
            child_indices = visit(reply_children, index, depth + 1)
            nodes[index] = Comment(
                id=data["id"],
                author=data.get("author") or "[deleted]",
                body=data.get("body") or "",
                score=data.get("score", 0),
                created_utc=datetime.fromtimestamp(data.get("created_utc", 0), tz=UTC),
                depth=data.get("depth", depth),
                parent=parent,
                children=tuple(child_indices),
            )
            indices.append(index)
        return indices

    try:
        if not isinstance(payload, list) or len(payload) < 2:
            raise ValueError("expected [post_listing, comment_listing]")
        post = _parse_post_json(payload[0]["data"]["children"][0]["data"], target_height)
        roots = visit(payload[1]["data"]["children"], None, 0)
    except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
        raise DecodeError(f"Malformed comments response: {exc!r}") from exc

    return CommentTree(post=post, nodes=tuple(nodes), roots=tuple(roots), more_count=more_count)


class RedditClient:
    """Authenticated access to listings, subscriptions and comments.

    Uses the password grant of a Reddit "script" app. The bearer token is
    held in memory only; callers re-authenticate when it expires.
    """

    def __init__(self, config: RedditConfig | None = None) -> None:
        self._cfg = config or RedditConfig()
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": self._cfg.user_agent})
        self._access_token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self._access_token is not None

    def clear_token(self) -> None:
        self._access_token = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send one request, retrying once on a transient failure.

        4xx responses are never retried; 401/403 become ``AuthError``.
        """
        last_error: NetworkError | None = None
        for _ in range(2):
            if last_error is not None:
                logger.warning(f"{last_error.message}; retrying once")
            try:
                resp = self._session.request(method, url, timeout=self._cfg.timeout, **kwargs)
            except (requests.ConnectionError, requests.Timeout) as exc:
                last_error = NetworkError(f"Request to {url} failed: {exc}")
                continue

            status = resp.status_code
            if status < 400:
                return resp
            if status in _AUTH_STATUSES:
                raise AuthError(f"Reddit rejected the credentials ({status})", status)
            if status == 429 or status >= 500:
                last_error = NetworkError(f"Reddit returned {status} for {url}", status)
                continue
            raise NetworkError(f"Reddit returned {status} for {url}", status, retryable=False)

        raise last_error

    def _get_json(self, path: str, params: dict | None = None):
        if self._access_token is None:
            raise AuthError("Not authenticated")
        resp = self._send(
            "GET",
            f"{self._cfg.api_base}{path}",
            params=params,
            headers={"Authorization": f"Bearer {self._access_token}"},
        )
        try:
            return resp.json()
        except ValueError as exc:
            raise DecodeError(f"Response from {path} is not JSON") from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def authenticate(self, credentials: Credentials) -> None:
        """Exchange account credentials for a bearer token."""
        logger.info(f"Authenticating u/{credentials.username}")
        resp = self._send(
            "POST",
            self._cfg.auth_url,
            auth=(credentials.client_id, credentials.client_secret),
            data={
                "grant_type": "password",
                "username": credentials.username,
                "password": credentials.password,
            },
        )
        try:
            body = resp.json()
        except ValueError as exc:
            raise DecodeError("Failed to parse authentication response") from exc

        # Wrong passwords come back as 200 {"error": "invalid_grant"}
        if isinstance(body, dict) and body.get("error"):
            raise AuthError(f"Reddit API error: {body['error']}", resp.status_code)
        if not isinstance(body, dict) or not body.get("access_token"):
            raise DecodeError("Authentication response has no access_token")

        self._access_token = body["access_token"]

    def fetch_listing(self, request: FeedRequest) -> Listing:
        """Fetch one page of the home feed or a subreddit."""
        params: dict = {"limit": request.limit, "raw_json": 1}
        if request.after:
            params["after"] = request.after
        if request.sort == "top":
            params["t"] = "day"

        logger.debug(f"Fetching {request.path} after={request.after}")
        payload = self._get_json(request.path, params)
        return _parse_listing_json(payload, request, self._cfg.preview_target_height)

    def fetch_subscribed_subreddits(self) -> list[str]:
        """Return display names of the user's subscriptions, following pagination."""
        names: list[str] = []
        after: str | None = None
        while True:
            params: dict = {"limit": 100}
            if after:
                params["after"] = after
            payload = self._get_json("/subreddits/mine/subscriber", params)
            try:
                data = payload["data"]
                names.extend(child["data"]["display_name"] for child in data["children"])
            except (KeyError, TypeError) as exc:
                raise DecodeError(f"Malformed subreddits response: {exc!r}") from exc
            after = data.get("after")
            if not after:
                return names

    def fetch_comments(
        self,
        post_id: str,
        *,
        limit: int | None = None,
        depth: int | None = None,
    ) -> CommentTree:
        """Fetch a post's comment tree."""
        params = {
            "limit": self._cfg.comment_limit if limit is None else limit,
            "depth": self._cfg.comment_depth if depth is None else depth,
            "raw_json": 1,
        }
        payload = self._get_json(f"/comments/{post_id}", params)
        return _parse_comment_tree(payload, self._cfg.preview_target_height)
