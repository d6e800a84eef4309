"""Test-gated, multi-step source editing with compensating rollback."""

__version__ = "0.1.0"
