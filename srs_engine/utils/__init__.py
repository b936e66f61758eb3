"""Utility modules for the scheduling engine."""

from . import audit_log

__all__ = ["audit_log"]
