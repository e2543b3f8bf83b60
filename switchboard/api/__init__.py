"""HTTP API over the orchestration engine."""

from .app import create_app

__all__ = ["create_app"]
