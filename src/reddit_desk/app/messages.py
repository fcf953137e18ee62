"""Messages posted by background jobs and consumed by ``AppState.apply``."""

from __future__ import annotations

from dataclasses import dataclass, field

from reddit_desk.auth.credentials import Credentials
from reddit_desk.client.schemas import CommentTree, Listing


@dataclass(frozen=True)
class CredentialsLoaded:
    """Startup keychain read finished."""

    credentials: Credentials | None
    error: Exception | None = None


@dataclass(frozen=True)
class CredentialsStored:
    """A keychain write or delete finished; ``error`` is set when it failed."""

    error: Exception | None = None


@dataclass(frozen=True)
class LoginSucceeded:
    request_id: int
    username: str
    subreddits: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ListingLoaded:
    """A first page (``append=False``) or a further page of the active feed."""

    request_id: int
    listing: Listing
    append: bool = False


@dataclass(frozen=True)
class ListingFailed:
    request_id: int
    error: Exception
    # Which action to repeat on retry: "login", "listing" or "more"
    action: str = "listing"


@dataclass(frozen=True)
class CommentsLoaded:
    request_id: int
    tree: CommentTree


@dataclass(frozen=True)
class CommentsFailed:
    request_id: int
    error: Exception


Message = (
    CredentialsLoaded
    | CredentialsStored
    | LoginSucceeded
    | ListingLoaded
    | ListingFailed
    | CommentsLoaded
    | CommentsFailed
)
