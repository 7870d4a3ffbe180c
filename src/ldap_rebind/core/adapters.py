# # Copyright (c) 2024 LDAP Rebind
# # SPDX-License-Identifier: MIT
# #
# # LDAP Rebind
# # Re-authenticates LDAP connections while chasing referrals

"""
SDK rebind callback adapters.

LDAP SDKs expose referral rebinding through one of two calling conventions:

- Lookup-and-supply (Tivoli style): the SDK asks the callback for the DN,
  password and auth method to use, then calls it again in release mode so
  the callback can free what it handed out.
- Bind-now (OpenLDAP style): the SDK hands the callback the handle, already
  pointed at the referral target, and the callback performs the bind itself.

One adapter is selected at configuration time and used for every handle.
"""

from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import TYPE_CHECKING, Any

from ldap3 import ANONYMOUS, SIMPLE
from ldap3.core.exceptions import LDAPException
from ldap3.core.results import RESULT_OTHER, RESULT_SUCCESS

from .errors import RebindNotImplementedError
from .logging import get_logger, log_rebind_operation

if TYPE_CHECKING:
    from .registry import Credentials

logger = get_logger("adapters")

LDAP_AUTH_SIMPLE = 0x80

Lookup = Callable[[Any], "Credentials | None"]


@dataclass
class RebindRequest:
    """Caller-owned out-parameters of a lookup-and-supply rebind callback."""

    bind_dn: str | None = None
    password: str | None = None
    method: int | None = None


class RebindAdapter:
    """Installs a rebind callback on a connection handle."""

    style = "none"

    def __init__(self, audit: bool = True):
        self.audit = audit

    def install(self, handle: Any, lookup: Lookup) -> None:
        """
        Install the SDK rebind callback on ``handle``.

        Args:
            handle: LDAP connection handle
            lookup: Registry lookup used by the callback to find credentials

        Raises:
            RebindNotImplementedError: If the handle has no usable rebind mechanism
        """
        raise RebindNotImplementedError(
            f"No rebind callback mechanism available for {type(handle).__name__}"
        )

    def _native_hook(self, handle: Any, *required: str) -> Callable:
        for name in required:
            if not callable(getattr(handle, name, None)):
                raise RebindNotImplementedError(
                    f"{type(handle).__name__} does not support {self.style} rebind "
                    f"(missing {name})"
                )
        return handle.set_rebind_proc

    def _audit(self, operation: str, dn: str | None, success: bool, details: str | None = None):
        if self.audit:
            log_rebind_operation(operation, dn, success, details)


class UnsupportedAdapter(RebindAdapter):
    """Used when no SDK rebind mechanism is available."""


class SupplyCredentialsAdapter(RebindAdapter):
    """
    Lookup-and-supply adapter.

    The SDK calls ``proc(handle, request, release)``. In lookup mode the
    adapter fills ``request`` with copies of the stored credentials; in
    release mode it clears only requests it filled itself.
    """

    style = "supply"

    def __init__(self, audit: bool = True):
        super().__init__(audit)
        self._issued: dict[int, RebindRequest] = {}
        self._issued_lock = Lock()

    def install(self, handle: Any, lookup: Lookup) -> None:
        set_rebind_proc = self._native_hook(handle, "set_rebind_proc")

        def rebind_proc(ld: Any, request: RebindRequest, release: bool) -> int:
            if release:
                self.release(request)
            else:
                self.supply(ld, request, lookup)
            return RESULT_SUCCESS

        set_rebind_proc(rebind_proc)
        logger.debug(f"Installed supply rebind callback on {type(handle).__name__}")

    def supply(self, handle: Any, request: RebindRequest, lookup: Lookup) -> None:
        """Fill ``request`` with the credentials registered for ``handle``."""
        request.method = LDAP_AUTH_SIMPLE
        credentials = lookup(handle)

        if credentials is not None and credentials.bind_dn is not None:
            request.bind_dn = str(credentials.bind_dn)
            request.password = (
                str(credentials.bind_pw) if credentials.bind_pw is not None else None
            )
        else:
            request.bind_dn = None
            request.password = None

        with self._issued_lock:
            self._issued[id(request)] = request

        self._audit("supply", request.bind_dn, True)

    def release(self, request: RebindRequest) -> bool:
        """
        Free credentials previously handed out in ``request``.

        Returns:
            True if the request had been filled by this adapter
        """
        with self._issued_lock:
            issued = self._issued.get(id(request))
            if issued is not request:
                logger.debug("Ignoring release of a request this adapter did not fill")
                return False
            del self._issued[id(request)]

        request.bind_dn = None
        request.password = None
        return True

    @property
    def outstanding(self) -> int:
        """Number of supplied requests not yet released."""
        with self._issued_lock:
            return len(self._issued)


class BindNowAdapter(RebindAdapter):
    """
    Bind-now adapter.

    The SDK calls ``proc(handle, url, request, msgid, params)``; the adapter
    binds ``handle`` with the stored credentials (anonymously if there are
    none) and returns the LDAP result code.
    """

    style = "bind"

    def install(self, handle: Any, lookup: Lookup) -> None:
        set_rebind_proc = self._native_hook(handle, "set_rebind_proc", "rebind")

        def rebind_proc(ld: Any, url: str, request: Any, msgid: int, params: Any) -> int:
            return self.bind(ld, url, lookup)

        set_rebind_proc(rebind_proc, None)
        logger.debug(f"Installed bind rebind callback on {type(handle).__name__}")

    def bind(self, handle: Any, url: str | None, lookup: Lookup) -> int:
        """Bind ``handle`` against the referral target and return the result code."""
        credentials = lookup(handle)
        bind_dn = bind_pw = None
        if credentials is not None and credentials.bind_dn is not None:
            bind_dn = credentials.bind_dn
            bind_pw = credentials.bind_pw

        authentication = SIMPLE if bind_dn is not None else ANONYMOUS
        logger.debug(f"Rebinding for referral to {url} using {authentication} auth")

        try:
            bound = handle.rebind(user=bind_dn, password=bind_pw, authentication=authentication)
        except LDAPException as e:
            code = self._result_code(handle, default=RESULT_OTHER)
            self._audit("bind", bind_dn, False, f"{url}: {e}")
            return code

        code = self._result_code(handle, default=RESULT_SUCCESS if bound else RESULT_OTHER)
        if bound and code == RESULT_SUCCESS:
            self._audit("bind", bind_dn, True, url)
            return RESULT_SUCCESS

        if code == RESULT_SUCCESS:
            code = RESULT_OTHER
        self._audit("bind", bind_dn, False, f"{url}: result {code}")
        return code

    @staticmethod
    def _result_code(handle: Any, default: int) -> int:
        result = getattr(handle, "result", None)
        if isinstance(result, dict) and isinstance(result.get("result"), int):
            return result["result"]
        return default


ADAPTERS: dict[str, type[RebindAdapter]] = {
    "supply": SupplyCredentialsAdapter,
    "bind": BindNowAdapter,
}


def select_adapter(style: str | None, audit: bool = True) -> RebindAdapter:
    """
    Select the rebind adapter for an SDK calling convention.

    Args:
        style: 'supply', 'bind', or anything else for no rebind support
        audit: Whether callbacks write audit log records

    Returns:
        The adapter to use for every registered handle
    """
    adapter_class = ADAPTERS.get(style or "", UnsupportedAdapter)
    logger.info(f"Selected {adapter_class.__name__} for callback style {style!r}")
    return adapter_class(audit=audit)
