"""Reconcile remote repository listings against local working copies."""

from .runner import main, mirror

__all__ = ["main", "mirror"]
