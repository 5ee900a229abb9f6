from .client import fetch_json, get_http_client, close_http_client

__all__ = ["fetch_json", "get_http_client", "close_http_client"]
