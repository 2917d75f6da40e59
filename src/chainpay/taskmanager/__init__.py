"""Task manager — periodic background jobs.

Provides ``TaskManager`` for cron-style tasks such as the overdue payment
sweep, which re-arms ACTIVE intents whose due time passed without a live
timer.
"""

from __future__ import annotations

from chainpay.taskmanager.manager import CronJob, TaskManager

__all__ = ["CronJob", "TaskManager"]
