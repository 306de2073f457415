from dotenv import load_dotenv
from os import getenv
from pathlib import Path


load_dotenv()
load_dotenv(dotenv_path=Path(".") / ".env")


def _as_bool(value):
    return value in [1, "1", True, "True", "true"]


def get_port():
    return int(getenv("GATEWAY_PORT", 2000))


def get_debug():
    return _as_bool(getenv("GATEWAY_DEBUG", False))


def get_remote_schemas():
    """Parses REMOTE_SCHEMAS, e.g. "universe=https://a/graphql,weather=https://b/graphql"."""
    remote_schemas = {}
    for entry in getenv("REMOTE_SCHEMAS", "").split(","):
        if not entry.strip():
            continue
        name, separator, uri = entry.partition("=")
        if not separator or not name.strip() or not uri.strip():
            raise ValueError(f"Invalid REMOTE_SCHEMAS entry: '{entry}'")
        remote_schemas[name.strip()] = uri.strip()
    return remote_schemas


def get_remote_timeout():
    return float(getenv("REMOTE_TIMEOUT", 10))


def get_introspection_retries():
    return int(getenv("INTROSPECTION_RETRIES", 3))


def get_introspection_backoff():
    return float(getenv("INTROSPECTION_BACKOFF", 0.5))


def get_request_timeout():
    return float(getenv("GATEWAY_REQUEST_TIMEOUT", 30))


def get_forward_authorization():
    return _as_bool(getenv("FORWARD_AUTHORIZATION", False))


def get_sentry_enabled():
    return _as_bool(getenv("SENTRY_ENABLED", False))
