"""Background maintenance scheduling."""

from notes_ai.scheduling.scheduler import MaintenanceScheduler

__all__ = ["MaintenanceScheduler"]
