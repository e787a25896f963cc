from .helpers import (
    utcnow,
    new_id,
    merge_non_null,
    success_response,
    error_response,
)
from .logger import Logger, set_log_level

__all__ = [
    "utcnow",
    "new_id",
    "merge_non_null",
    "success_response",
    "error_response",
    "Logger",
    "set_log_level",
]
