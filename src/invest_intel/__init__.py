"""Investment intelligence signal and scoring engine."""

import os


def get_server_version() -> str:
    """Get version with fallback for dev mode."""
    if version := os.environ.get("SERVER_VERSION"):
        return version
    try:
        from importlib.metadata import version as pkg_version

        return pkg_version("invest-intel")
    except Exception:
        return "dev"


SERVER_VERSION = get_server_version()
# Bump when tool output schema changes materially
# v1: Initial schema (signals, fundamentals, opportunity, digest)
# v2: Typed signal metadata, digest "All Opportunities" section in HTML form
SCHEMA_VERSION = "2"
