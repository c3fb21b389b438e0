# tests/__init__.py

from tests.helpers.invariants import assert_state_invariants

__all__ = ["assert_state_invariants"]
