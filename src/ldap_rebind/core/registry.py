# # Copyright (c) 2024 LDAP Rebind
# # SPDX-License-Identifier: MIT
# #
# # LDAP Rebind
# # Re-authenticates LDAP connections while chasing referrals

"""Credential registry used to rebind LDAP connections while chasing referrals."""

from dataclasses import dataclass
from threading import Lock
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..config.models import RebindConfig
from .adapters import RebindAdapter, select_adapter
from .errors import RebindOutOfMemoryError
from .lifecycle import LifecycleBinding
from .logging import get_logger
from .scope import AllocationScope

logger = get_logger("registry")


class Credentials(BaseModel):
    """Bind credentials registered for a connection handle."""

    model_config = ConfigDict(frozen=True)

    bind_dn: str | None = Field(default=None, description="Bind distinguished name")
    bind_pw: str | None = Field(default=None, description="Bind password", repr=False)


@dataclass(eq=False)
class RebindEntry:
    """A registered handle; the entry and its strings are owned by ``scope``."""

    scope: AllocationScope
    handle: Any
    bind_dn: str | None = None
    bind_pw: str | None = None
    binding: LifecycleBinding | None = None

    def credentials(self) -> Credentials:
        return Credentials(bind_dn=self.bind_dn, bind_pw=self.bind_pw)


class RebindRegistry:
    """
    Thread-safe association of LDAP connection handles with bind credentials.

    Handles are matched by identity. Adding the same handle twice without
    removing it keeps both entries; lookups and removals act on the most
    recently added one.
    """

    _init_lock = Lock()

    def __init__(self, adapter: RebindAdapter | None = None):
        """
        Initialize the registry.

        Args:
            adapter: Adapter that installs the SDK rebind callback on each handle.
                Defaults to the adapter for the default callback style.
        """
        if adapter is None:
            adapter = select_adapter(RebindConfig().callback_style)
        self.adapter = adapter

        self._lock: Lock | None = None
        self._entries: dict[int, list[RebindEntry]] = {}

        self.init()

    @classmethod
    def from_config(cls, config: RebindConfig) -> "RebindRegistry":
        """Create a registry with the adapter selected by ``config``."""
        return cls(select_adapter(config.callback_style, audit=config.audit))

    def init(self, scope: AllocationScope | None = None) -> None:
        """
        Prepare the registry lock. Calling this more than once is harmless.

        Args:
            scope: Optional scope; when it is torn down every entry is dropped.
                The lock is kept, so the registry stays usable afterwards
        """
        with self._init_lock:
            if self._lock is None:
                self._lock = Lock()
                logger.debug("Rebind registry lock created")

        if scope is not None:
            scope.register_finalizer(self, RebindRegistry._shutdown)

    def _shutdown(self) -> None:
        with self._guard():
            entries = [entry for stack in self._entries.values() for entry in stack]
            self._entries.clear()

        for entry in entries:
            if entry.binding is not None:
                entry.binding.cancel()

        logger.info(f"Rebind registry shut down, dropped {len(entries)} entries")

    def _guard(self) -> Lock:
        lock = self._lock
        if lock is None:
            with self._init_lock:
                if self._lock is None:
                    self._lock = Lock()
                lock = self._lock
        return lock

    def add(
        self,
        scope: AllocationScope,
        handle: Any,
        bind_dn: str | None = None,
        bind_pw: str | None = None,
    ) -> None:
        """
        Register credentials for ``handle`` and install the rebind callback.

        Args:
            scope: Scope owning the entry; its teardown removes the entry
            handle: LDAP connection handle
            bind_dn: Bind DN, or None for anonymous rebinds
            bind_pw: Bind password

        Raises:
            RebindOutOfMemoryError: If the entry cannot be allocated from ``scope``
            RebindNotImplementedError: If the handle has no usable rebind mechanism

        Any error raised while installing the callback is re-raised after the
        entry has been rolled back.
        """
        try:
            entry = scope.allocate(
                RebindEntry(
                    scope=scope,
                    handle=handle,
                    bind_dn=scope.strdup(bind_dn) if bind_dn is not None else None,
                    bind_pw=scope.strdup(bind_pw) if bind_pw is not None else None,
                )
            )
        except MemoryError as e:
            raise RebindOutOfMemoryError(f"Cannot allocate rebind entry: {e}") from e

        with self._guard():
            self._entries.setdefault(id(handle), []).append(entry)

        try:
            entry.binding = LifecycleBinding.attach(scope, entry, self._discard)
        except MemoryError as e:
            self._discard(entry)
            raise RebindOutOfMemoryError(f"Cannot bind rebind entry to scope: {e}") from e

        try:
            self.adapter.install(handle, self.lookup)
        except Exception as e:
            logger.warning(f"Rolling back rebind entry for {bind_dn}: {e}")
            self._discard(entry)
            raise

        logger.debug(f"Registered rebind credentials for {bind_dn or '<anonymous>'}")

    def remove(self, handle: Any) -> None:
        """
        Remove the most recently added entry for ``handle``.

        Removing a handle that is not registered does nothing.
        """
        entry = None

        with self._guard():
            stack = self._entries.get(id(handle))
            if stack:
                entry = stack.pop()
                if not stack:
                    del self._entries[id(handle)]

        if entry is not None:
            if entry.binding is not None:
                entry.binding.cancel()
            logger.debug(f"Removed rebind credentials for {entry.bind_dn or '<anonymous>'}")

    def _discard(self, entry: RebindEntry) -> None:
        """Unlink exactly ``entry`` if it is still registered."""
        with self._guard():
            key = id(entry.handle)
            stack = self._entries.get(key, [])
            for index, candidate in enumerate(stack):
                if candidate is entry:
                    del stack[index]
                    break
            if not stack:
                self._entries.pop(key, None)

        if entry.binding is not None:
            entry.binding.cancel()

    def lookup(self, handle: Any) -> Credentials | None:
        """
        Get the credentials registered for ``handle``.

        Returns:
            A copy of the most recent entry's credentials, or None
        """
        with self._guard():
            stack = self._entries.get(id(handle))
            if not stack:
                return None
            return stack[-1].credentials()

    def snapshot(self) -> list[tuple[Any, Credentials]]:
        """Every live entry as ``(handle, credentials)``, newest first per handle."""
        with self._guard():
            return [
                (entry.handle, entry.credentials())
                for stack in self._entries.values()
                for entry in reversed(stack)
            ]

    def __len__(self) -> int:
        with self._guard():
            return sum(len(stack) for stack in self._entries.values())

    def __contains__(self, handle: Any) -> bool:
        with self._guard():
            return bool(self._entries.get(id(handle)))
