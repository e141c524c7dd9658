"""Task scheduler for appointment reminders."""

from .reminders import check_and_send_reminders, setup_scheduler, shutdown_scheduler

__all__ = ["setup_scheduler", "check_and_send_reminders", "shutdown_scheduler"]
