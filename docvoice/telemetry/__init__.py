"""Telemetry and observability helpers.

This package emits deterministic stage events for auditing runs.
"""

from .logger import RunLogger

__all__ = ["RunLogger"]
