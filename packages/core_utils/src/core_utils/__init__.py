from .ids import generate_request_id
from .health import attach_health_routes

__all__ = [
    "generate_request_id",
    "attach_health_routes",
]
