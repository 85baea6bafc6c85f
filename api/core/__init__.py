"""Core plumbing for the booking API: settings, database, auth, logging.

Routes and services import the logger from here:
    from core import get_logger
"""

from core.logger import get_logger
from core.wide_event import set_job_context, set_wide_event_fields

__all__ = [
    "get_logger",
    "set_job_context",
    "set_wide_event_fields",
]
