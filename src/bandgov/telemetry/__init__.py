"""Operational logging for the governance engine."""

from bandgov.telemetry.logging import setup_logging

__all__ = ["setup_logging"]
