# # Copyright (c) 2024 LDAP Rebind
# # SPDX-License-Identifier: MIT
# #
# # LDAP Rebind
# # Re-authenticates LDAP connections while chasing referrals

"""Exceptions raised by the rebind registry."""


class RebindError(Exception):
    """Base class for rebind registry errors."""


class RebindOutOfMemoryError(RebindError, MemoryError):
    """An entry could not be allocated from its owning scope."""


class RebindNotImplementedError(RebindError, NotImplementedError):
    """No usable SDK rebind callback mechanism is available for a handle."""
