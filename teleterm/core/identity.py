"""Session identity: the client-chosen name and the host-assigned id.

The transport is shared and the host broadcasts, so identity is double-keyed:
spawn confirmations are matched on `requested_name`, streaming traffic on
`assigned_id`.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field

from teleterm.constants import NAME_SUFFIX_ALPHABET, NAME_SUFFIX_LENGTH
from teleterm.errors import IdentityError

_rng = random.SystemRandom()


def generate_requested_name(owner: str, now_ms: int | None = None) -> str:
    """Build a practically unique name: owner, epoch millis, random base36 suffix."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(_rng.choice(NAME_SUFFIX_ALPHABET) for _ in range(NAME_SUFFIX_LENGTH))
    return f"{owner}-terminal-{now_ms}-{suffix}"


@dataclass
class SessionIdentity:
    """Identity of one logical session; never reused after teardown."""

    requested_name: str
    assigned_id: str | None = field(default=None, init=False)
    assigned_session_name: str | None = field(default=None, init=False)

    @classmethod
    def for_owner(cls, owner: str) -> "SessionIdentity":
        return cls(requested_name=generate_requested_name(owner))

    @property
    def is_assigned(self) -> bool:
        return self.assigned_id is not None

    def assign(self, terminal_id: str, session_name: str | None = None) -> None:
        """Record the host-assigned id. Allowed exactly once.

        Raises:
            IdentityError: If an id was already assigned
        """
        if self.assigned_id is not None:
            raise IdentityError(
                f"Terminal id already assigned for {self.requested_name}",
                details={"assigned_id": self.assigned_id, "new_id": terminal_id},
            )
        self.assigned_id = terminal_id
        self.assigned_session_name = session_name

    def matches_name(self, name: str | None) -> bool:
        return name is not None and name == self.requested_name

    def matches_id(self, terminal_id: str | None) -> bool:
        return self.assigned_id is not None and terminal_id == self.assigned_id

    @property
    def display_name(self) -> str:
        """Label shown to the user: host session name, else id, else requested name."""
        return self.assigned_session_name or self.assigned_id or self.requested_name
