# # Copyright (c) 2024 LDAP Rebind
# # SPDX-License-Identifier: MIT
# #
# # LDAP Rebind
# # Re-authenticates LDAP connections while chasing referrals

"""LDAP Rebind - re-authenticate LDAP connections while chasing referrals."""

from .core.adapters import BindNowAdapter, RebindRequest, SupplyCredentialsAdapter, select_adapter
from .core.errors import RebindError, RebindNotImplementedError, RebindOutOfMemoryError
from .core.registry import Credentials, RebindRegistry
from .core.scope import AllocationScope

__version__ = "0.1.0"
__description__ = "Credential registry for rebinding LDAP connections on referrals"

__all__ = [
    "AllocationScope",
    "BindNowAdapter",
    "Credentials",
    "RebindError",
    "RebindNotImplementedError",
    "RebindOutOfMemoryError",
    "RebindRegistry",
    "RebindRequest",
    "SupplyCredentialsAdapter",
    "select_adapter",
]
