"""Admin session check consumed by admin-gated operations."""

from typing import Protocol


class AdminSession(Protocol):
    """Anything that can tell whether an admin is logged in."""

    def is_admin_session_active(self) -> bool:
        ...


class StaticAdminSession:
    """Admin session with a settable flag.

    Used by the command line (``--admin``) and by tests.
    """

    def __init__(self, active: bool = False):
        self.active = active

    def is_admin_session_active(self) -> bool:
        return self.active

    def login(self) -> None:
        self.active = True

    def logout(self) -> None:
        self.active = False
