"""
Dashboard Package.

HTTP API over the domain feeds.

Modules:
- api: application factory (create_app, build_app)
- routers/: one router per domain plus status, newsletter and admin
- schemas: pydantic response envelopes
"""

from dashboard.api import build_app, create_app

__all__ = ["build_app", "create_app"]
