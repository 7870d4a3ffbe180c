# # Copyright (c) 2024 LDAP Rebind
# # SPDX-License-Identifier: MIT
# #
# # LDAP Rebind
# # Re-authenticates LDAP connections while chasing referrals

"""Bounded-lifetime allocation scopes with teardown finalizers."""

from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Any

from .logging import get_logger

logger = get_logger("scope")


@dataclass(eq=False)
class Finalizer:
    """A teardown action registered with a scope."""

    data: Any
    callback: Callable[[Any], None]

    def __call__(self) -> None:
        self.callback(self.data)


class AllocationScope:
    """
    Owns allocations and runs finalizers when it ends.

    Child scopes are torn down before the parent's own finalizers run.
    Finalizers run newest first. The scope lock is never held while a
    finalizer runs, so finalizers may call back into the scope.
    """

    def __init__(self, name: str | None = None, parent: "AllocationScope | None" = None):
        self.name = name or "scope"
        self.parent = parent

        self._lock = Lock()
        self._allocations: list[Any] = []
        self._finalizers: list[Finalizer] = []
        self._children: list[AllocationScope] = []
        self._closing = False
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def allocations(self) -> int:
        """Number of live allocations owned by this scope."""
        with self._lock:
            return len(self._allocations)

    def create_child(self, name: str | None = None) -> "AllocationScope":
        """Create a scope whose lifetime is bounded by this one."""
        child = AllocationScope(name=name, parent=self)
        with self._lock:
            self._check_alive()
            self._children.append(child)
        return child

    def allocate(self, obj: Any) -> Any:
        """
        Record an allocation owned by this scope.

        Raises:
            MemoryError: If the scope has been destroyed
        """
        with self._lock:
            self._check_alive()
            self._allocations.append(obj)
        return obj

    def strdup(self, value: str) -> str:
        """Duplicate a string into scope-owned storage."""
        return self.allocate(str(value))

    def register_finalizer(self, data: Any, callback: Callable[[Any], None]) -> Finalizer:
        """
        Register ``callback(data)`` to run when the scope is cleared or destroyed.

        Raises:
            MemoryError: If the scope has been destroyed
        """
        finalizer = Finalizer(data, callback)
        with self._lock:
            self._check_alive()
            self._finalizers.append(finalizer)
        return finalizer

    def cancel_finalizer(self, finalizer: Finalizer) -> bool:
        """
        Withdraw a finalizer so it never runs.

        Returns:
            True if the finalizer was still pending
        """
        with self._lock:
            for index, pending in enumerate(self._finalizers):
                if pending is finalizer:
                    del self._finalizers[index]
                    return True
        return False

    def clear(self) -> None:
        """Tear down children, run finalizers and release allocations; stay usable."""
        with self._lock:
            children = list(self._children)
            self._children.clear()

        for child in reversed(children):
            child.destroy()

        while True:
            with self._lock:
                if not self._finalizers:
                    break
                finalizer = self._finalizers.pop()

            try:
                finalizer()
            except Exception as e:
                logger.error(f"Finalizer failed during teardown of {self.name}: {e}")

        with self._lock:
            released = len(self._allocations)
            self._allocations.clear()

        logger.debug(f"Cleared scope {self.name}, released {released} allocations")

    def destroy(self) -> None:
        """
        Clear the scope and mark it unusable. Destroying twice is a no-op.

        New allocations and finalizers are refused as soon as teardown starts.
        """
        with self._lock:
            if self._closing or self._destroyed:
                return
            self._closing = True

        self.clear()

        with self._lock:
            self._destroyed = True

        if self.parent is not None:
            self.parent._forget_child(self)

    def _forget_child(self, child: "AllocationScope") -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def _check_alive(self) -> None:
        if self._destroyed:
            raise MemoryError(f"Allocation scope {self.name} has been destroyed")
        if self._closing:
            raise MemoryError(f"Allocation scope {self.name} is being destroyed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.destroy()
