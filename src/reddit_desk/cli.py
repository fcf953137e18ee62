"""Click CLI: ui | login | logout | feed | comments."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import click

from reddit_desk.auth.credentials import Credentials
from reddit_desk.auth.store import CredentialStore, StoreUnavailable
from reddit_desk.client.errors import RedditError
from reddit_desk.client.reddit import RedditClient
from reddit_desk.client.schemas import HOME_FEED, SORTS, FeedRequest
from reddit_desk.config import APP_VERSION, reddit_config
from reddit_desk.utils.logging import setup_logging

_UI_SCRIPT = Path(__file__).parent / "ui" / "app.py"


def _logged_in_client() -> RedditClient:
    """Client authenticated with the stored credentials, or exit with an error."""
    try:
        credentials = CredentialStore().load()
    except StoreUnavailable as exc:
        click.echo(f"Keychain unavailable: {exc}", err=True)
        sys.exit(1)
    if credentials is None:
        click.echo("No stored credentials. Run 'reddit-desk login' first.", err=True)
        sys.exit(1)

    client = RedditClient()
    try:
        client.authenticate(credentials)
    except RedditError as exc:
        click.echo(f"Login failed: {exc.message}", err=True)
        sys.exit(1)
    return client


@click.group()
@click.version_option(APP_VERSION, prog_name="reddit-desk")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
def cli(log_level: str | None) -> None:
    """Minimal graphical Reddit client."""
    setup_logging(log_level)


@cli.command()
@click.option("--port", type=int, default=None, help="Port for the local UI server")
def ui(port: int | None) -> None:
    """Open the browser window (Streamlit)."""
    cmd = [sys.executable, "-m", "streamlit", "run", str(_UI_SCRIPT)]
    if port:
        cmd += ["--server.port", str(port)]
    sys.exit(subprocess.call(cmd))


@cli.command()
@click.option("--client-id", prompt=True)
@click.option("--client-secret", prompt=True, hide_input=True)
@click.option("--username", prompt=True)
@click.option("--password", prompt=True, hide_input=True)
@click.option("--no-verify", is_flag=True, default=False, help="Store without a test login")
def login(client_id: str, client_secret: str, username: str, password: str, no_verify: bool) -> None:
    """Store Reddit script-app credentials in the system keychain.

    Create the app at https://www.reddit.com/prefs/apps (type "script").
    """
    credentials = Credentials(client_id, client_secret, username, password)
    if not no_verify:
        try:
            RedditClient().authenticate(credentials)
        except RedditError as exc:
            click.echo(f"Login failed: {exc.message}", err=True)
            sys.exit(1)

    try:
        CredentialStore().save(credentials)
    except StoreUnavailable as exc:
        click.echo(f"Keychain unavailable: {exc}", err=True)
        sys.exit(1)
    click.echo(f"Logged in as u/{username}")


@cli.command()
def logout() -> None:
    """Remove stored credentials."""
    try:
        CredentialStore().clear()
    except StoreUnavailable as exc:
        click.echo(f"Keychain unavailable: {exc}", err=True)
        sys.exit(1)
    click.echo("Logged out")


@cli.command()
@click.argument("feed", default=HOME_FEED)
@click.option("--sort", type=click.Choice(SORTS), default="hot", show_default=True)
@click.option("--limit", "-n", type=int, default=None, help="Posts per page")
@click.option("--after", default=None, help="Pagination cursor from a previous page")
@click.option("--export", "export_path", type=click.Path(), default=None, help="Save as .csv or .parquet")
def feed(feed: str, sort: str, limit: int | None, after: str | None, export_path: str | None) -> None:
    """List posts from the home feed or a subreddit (e.g. 'python' or 'r/python')."""
    name = feed.removeprefix("/").removeprefix("r/")
    client = _logged_in_client()
    request = FeedRequest(feed=name, sort=sort, after=after, limit=limit or reddit_config.page_size)
    try:
        listing = client.fetch_listing(request)
    except RedditError as exc:
        click.echo(f"Error fetching posts: {exc.message}", err=True)
        sys.exit(1)

    if not listing.posts:
        click.echo("No posts found.")
    for post in listing.posts:
        click.echo(f"[{post.score:>6}] {post.title}")
        click.echo(f"         u/{post.author} in r/{post.subreddit} · {post.num_comments} comments · {post.id}")
    if listing.after:
        click.echo(f"\nNext page: --after {listing.after}")

    if export_path:
        from reddit_desk.export import export_listing

        try:
            out = export_listing(listing, Path(export_path))
        except ValueError as exc:
            click.echo(str(exc), err=True)
            sys.exit(1)
        click.echo(f"Saved: {out}")


@cli.command()
@click.argument("post_id")
def comments(post_id: str) -> None:
    """Print a post's comment tree."""
    client = _logged_in_client()
    try:
        tree = client.fetch_comments(post_id.removeprefix("t3_"))
    except RedditError as exc:
        click.echo(f"Error fetching comments: {exc.message}", err=True)
        sys.exit(1)

    click.echo(f"{tree.post.title} (u/{tree.post.author}, score {tree.post.score})\n")
    for _, comment in tree.walk():
        indent = "  " * comment.depth
        click.echo(f"{indent}u/{comment.author} [{comment.score}]")
        for line in comment.body.splitlines() or [""]:
            click.echo(f"{indent}  {line}")
    if tree.more_count:
        click.echo(f"\n({tree.more_count} collapsed threads not loaded)")


if __name__ == "__main__":
    cli()
