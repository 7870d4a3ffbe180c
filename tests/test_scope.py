# # Copyright (c) 2024 LDAP Rebind
# # SPDX-License-Identifier: MIT
# #
# # LDAP Rebind
# # Re-authenticates LDAP connections while chasing referrals

"""Tests for allocation scopes and lifecycle bindings."""

import logging
from unittest.mock import Mock

import pytest

from ldap_rebind.core.lifecycle import LifecycleBinding
from ldap_rebind.core.scope import AllocationScope


class TestAllocationScope:
    """Test allocation scope behaviour."""

    def test_allocate_and_strdup(self):
        """Test that allocations are tracked until teardown."""
        scope = AllocationScope("test")

        value = scope.strdup("cn=a")
        scope.allocate(object())

        assert value == "cn=a"
        assert scope.allocations == 2

        scope.destroy()
        assert scope.allocations == 0

    def test_destroyed_scope_refuses_allocation(self):
        """Test allocation from a destroyed scope."""
        scope = AllocationScope("test")
        scope.destroy()

        with pytest.raises(MemoryError):
            scope.allocate(object())
        with pytest.raises(MemoryError):
            scope.register_finalizer(None, Mock())
        with pytest.raises(MemoryError):
            scope.create_child()

    def test_finalizers_run_newest_first(self):
        """Test finalizer ordering on destroy."""
        scope = AllocationScope("test")
        order = []
        scope.register_finalizer("first", order.append)
        scope.register_finalizer("second", order.append)

        scope.destroy()

        assert order == ["second", "first"]

    def test_cancel_finalizer(self):
        """Test that cancelled finalizers never run."""
        scope = AllocationScope("test")
        callback = Mock()
        finalizer = scope.register_finalizer("data", callback)

        assert scope.cancel_finalizer(finalizer) is True
        assert scope.cancel_finalizer(finalizer) is False

        scope.destroy()
        callback.assert_not_called()

    def test_clear_keeps_scope_usable(self):
        """Test that clear runs finalizers but keeps the scope alive."""
        scope = AllocationScope("test")
        callback = Mock()
        scope.register_finalizer("data", callback)

        scope.clear()

        callback.assert_called_once_with("data")
        assert not scope.destroyed
        scope.allocate(object())
        scope.destroy()

    def test_destroy_twice(self):
        """Test that destroying twice runs finalizers once."""
        scope = AllocationScope("test")
        callback = Mock()
        scope.register_finalizer("data", callback)

        scope.destroy()
        scope.destroy()

        callback.assert_called_once_with("data")

    def test_children_torn_down_first(self):
        """Test that child scopes end before the parent's finalizers run."""
        parent = AllocationScope("parent")
        child = parent.create_child("child")
        order = []
        parent.register_finalizer("parent", order.append)
        child.register_finalizer("child", order.append)

        parent.destroy()

        assert order == ["child", "parent"]
        assert child.destroyed

    def test_child_destroy_detaches_from_parent(self):
        """Test that a destroyed child is not torn down again."""
        parent = AllocationScope("parent")
        child = parent.create_child("child")

        child.destroy()

        assert parent._children == []
        parent.destroy()

    def test_failing_finalizer_does_not_stop_teardown(self, caplog):
        """Test that a raising finalizer is logged and teardown continues."""
        scope = AllocationScope("test")
        callback = Mock()
        scope.register_finalizer("ok", callback)
        scope.register_finalizer("bad", Mock(side_effect=RuntimeError("boom")))

        with caplog.at_level(logging.ERROR, logger="ldap-rebind"):
            scope.destroy()

        callback.assert_called_once_with("ok")
        assert "Finalizer failed during teardown of test: boom" in caplog.text

    def test_finalizer_may_cancel_others(self):
        """Test that finalizers can call back into the scope."""
        scope = AllocationScope("test")
        later = Mock()
        pending = scope.register_finalizer("later", later)
        scope.register_finalizer(pending, scope.cancel_finalizer)

        scope.destroy()

        later.assert_not_called()

    def test_teardown_refuses_new_finalizers(self):
        """Test that finalizers cannot be registered once destroy has started."""
        scope = AllocationScope("test")
        late = Mock()
        refused = []

        def register_late(_):
            try:
                scope.register_finalizer("late", late)
            except MemoryError as e:
                refused.append(e)
            try:
                scope.allocate(object())
            except MemoryError as e:
                refused.append(e)

        scope.register_finalizer(None, register_late)

        scope.destroy()

        assert len(refused) == 2
        assert "is being destroyed" in str(refused[0])
        late.assert_not_called()
        assert scope._finalizers == []

    def test_clear_keeps_accepting_finalizers(self):
        """Test that clear, unlike destroy, leaves the scope open."""
        scope = AllocationScope("test")
        scope.clear()

        finalizer = scope.register_finalizer("data", Mock())

        assert scope.cancel_finalizer(finalizer) is True
        scope.destroy()

    def test_context_manager(self):
        """Test that leaving the with block destroys the scope."""
        with AllocationScope("test") as scope:
            scope.allocate(object())

        assert scope.destroyed


class TestLifecycleBinding:
    """Test lifecycle bindings."""

    def test_attach_runs_on_teardown(self):
        """Test that the bound entry is handed to the teardown callback."""
        scope = AllocationScope("test")
        entry = object()
        on_teardown = Mock()

        binding = LifecycleBinding.attach(scope, entry, on_teardown)
        assert binding.active

        scope.destroy()
        on_teardown.assert_called_once_with(entry)

    def test_cancel(self):
        """Test that cancelled bindings never fire."""
        scope = AllocationScope("test")
        on_teardown = Mock()
        binding = LifecycleBinding.attach(scope, object(), on_teardown)

        binding.cancel()
        binding.cancel()

        assert not binding.active
        scope.destroy()
        on_teardown.assert_not_called()

    def test_attach_to_destroyed_scope(self):
        """Test attaching to a scope that has already ended."""
        scope = AllocationScope("test")
        scope.destroy()

        with pytest.raises(MemoryError):
            LifecycleBinding.attach(scope, object(), Mock())
