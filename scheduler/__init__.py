from .maintenance import CleanupReport, HealthSnapshot, Maintenance
from .scheduler import IntervalJob, Scheduler, SweepReport

__all__ = [
    "Scheduler",
    "IntervalJob",
    "SweepReport",
    "Maintenance",
    "HealthSnapshot",
    "CleanupReport",
]
