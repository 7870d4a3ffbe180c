# # Copyright (c) 2024 LDAP Rebind
# # SPDX-License-Identifier: MIT
# #
# # LDAP Rebind
# # Re-authenticates LDAP connections while chasing referrals

"""Ties registry entries to the teardown of their owning scope."""

from collections.abc import Callable
from typing import Any

from .scope import AllocationScope, Finalizer


class LifecycleBinding:
    """A pending "unlink this entry" finalizer on an owning scope."""

    def __init__(self, scope: AllocationScope, finalizer: Finalizer):
        self.scope = scope
        self._finalizer: Finalizer | None = finalizer

    @classmethod
    def attach(
        cls, scope: AllocationScope, entry: Any, on_teardown: Callable[[Any], None]
    ) -> "LifecycleBinding":
        """
        Register ``on_teardown(entry)`` with the scope.

        Raises:
            MemoryError: If the scope has already been destroyed
        """
        return cls(scope, scope.register_finalizer(entry, on_teardown))

    @property
    def active(self) -> bool:
        return self._finalizer is not None

    def cancel(self) -> None:
        """Withdraw the finalizer. Safe to call more than once."""
        finalizer, self._finalizer = self._finalizer, None
        if finalizer is not None:
            self.scope.cancel_finalizer(finalizer)
