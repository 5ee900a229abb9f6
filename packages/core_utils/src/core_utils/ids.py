import uuid

def generate_request_id() -> str:
    """
    Non-deterministic 16-hex id for request correlation in logs and the
    ``x-request-id`` response header.
    """
    return uuid.uuid4().hex[:16]

__all__ = ["generate_request_id"]
