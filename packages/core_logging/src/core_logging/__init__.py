from .logger import (
    get_logger,
    log_stage,
    bind_request_id,
    current_request_id,
    emit_request_summary,
    emit_request_error_summary,
    record_error,
)

__all__ = [
    "get_logger",
    "log_stage",
    "bind_request_id",
    "current_request_id",
    "emit_request_summary",
    "emit_request_error_summary",
    "record_error",
]
