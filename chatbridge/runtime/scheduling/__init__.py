"""Scheduling subsystem for chatbridge."""

from chatbridge.runtime.scheduling.maintenance import MaintenanceScheduler

__all__ = ["MaintenanceScheduler"]
