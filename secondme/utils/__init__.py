"""Shared helpers."""

from secondme.utils.deadline import Deadline

__all__ = ["Deadline"]
