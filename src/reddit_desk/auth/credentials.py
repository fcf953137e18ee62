"""Reddit "script" app credentials."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Credentials:
    """Everything needed for a password-grant token request."""

    client_id: str
    client_secret: str
    username: str
    password: str

    def is_complete(self) -> bool:
        return all((self.client_id, self.client_secret, self.username, self.password))

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> Credentials:
        """Parse a stored JSON document; raises ``ValueError`` if it is not one."""
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("credentials document must be a JSON object")
        try:
            return cls(
                client_id=str(data["client_id"]),
                client_secret=str(data["client_secret"]),
                username=str(data["username"]),
                password=str(data["password"]),
            )
        except KeyError as exc:
            raise ValueError(f"credentials document is missing {exc}") from exc

    def __repr__(self) -> str:
        # Keep secrets out of logs and tracebacks
        return f"Credentials(client_id={self.client_id!r}, username={self.username!r})"
