# # Copyright (c) 2024 LDAP Rebind
# # SPDX-License-Identifier: MIT
# #
# # LDAP Rebind
# # Re-authenticates LDAP connections while chasing referrals

"""Shared fixtures for LDAP Rebind tests."""

import logging
from unittest.mock import Mock

import pytest

from ldap_rebind.core.adapters import BindNowAdapter, SupplyCredentialsAdapter
from ldap_rebind.core.registry import RebindRegistry
from ldap_rebind.core.scope import AllocationScope


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo level and handler changes made by setup_logging."""
    yield
    logger = logging.getLogger("ldap-rebind")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def scope():
    """An allocation scope destroyed after the test."""
    with AllocationScope("test") as test_scope:
        yield test_scope


@pytest.fixture
def make_bind_handle():
    """Factory for handles supporting the bind-now rebind convention."""

    def factory(result_code: int = 0) -> Mock:
        handle = Mock(spec=["set_rebind_proc", "rebind", "result"])
        handle.rebind.return_value = result_code == 0
        handle.result = {"result": result_code}
        return handle

    return factory


@pytest.fixture
def make_supply_handle():
    """Factory for handles supporting the lookup-and-supply rebind convention."""
    return lambda: Mock(spec=["set_rebind_proc"])


@pytest.fixture
def bind_registry():
    """Registry using the bind-now adapter."""
    return RebindRegistry(BindNowAdapter())


@pytest.fixture
def supply_registry():
    """Registry using the lookup-and-supply adapter."""
    return RebindRegistry(SupplyCredentialsAdapter())
