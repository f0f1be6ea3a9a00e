"""
Dashboard API routers.
"""
from dashboard.routers import admin, events, news, newsletter, status, surf, weather

__all__ = ["admin", "events", "news", "newsletter", "status", "surf", "weather"]
