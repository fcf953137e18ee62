"""
Credential store backed by the OS keychain.

Wraps ``keyring`` so the rest of the app sees three calls (save, load,
clear) and a single exception type when the keychain cannot be reached.
"""

from __future__ import annotations

import keyring
from keyring.backend import KeyringBackend
from keyring.errors import KeyringError, PasswordDeleteError
from loguru import logger

from reddit_desk.auth.credentials import Credentials
from reddit_desk.config import AppConfig


class StoreUnavailable(Exception):
    """The OS credential store cannot be reached."""


class CredentialStore:
    """
    Persist Reddit credentials under an application-scoped keychain entry.

    Usage:
        store = CredentialStore()
        store.save(credentials)
        credentials = store.load()   # None when nothing is stored
        store.clear()
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        backend: KeyringBackend | None = None,
    ) -> None:
        cfg = config or AppConfig()
        self._service = cfg.keyring_service
        self._username = cfg.keyring_username
        self._backend = backend

    @property
    def backend(self) -> KeyringBackend:
        if self._backend is None:
            try:
                self._backend = keyring.get_keyring()
            except KeyringError as exc:
                raise StoreUnavailable(f"No keychain backend available: {exc}") from exc
        return self._backend

    def save(self, credentials: Credentials) -> None:
        try:
            self.backend.set_password(self._service, self._username, credentials.to_json())
        except KeyringError as exc:
            raise StoreUnavailable(f"Could not write to the keychain: {exc}") from exc
        logger.info(f"Stored credentials for u/{credentials.username} in the keychain")

    def load(self) -> Credentials | None:
        try:
            raw = self.backend.get_password(self._service, self._username)
        except KeyringError as exc:
            raise StoreUnavailable(f"Could not read from the keychain: {exc}") from exc

        if not raw:
            return None
        try:
            return Credentials.from_json(raw)
        except ValueError as exc:
            logger.warning(f"Ignoring unreadable keychain entry {self._service!r}: {exc}")
            return None

    def clear(self) -> None:
        try:
            self.backend.delete_password(self._service, self._username)
        except PasswordDeleteError:
            # Nothing stored
            return
        except KeyringError as exc:
            raise StoreUnavailable(f"Could not delete from the keychain: {exc}") from exc
        logger.info("Removed stored credentials from the keychain")
