"""
App assembly entry point.

Re-exports the FastAPI `app` from `clubhouse.api.main` so the service can be
started with `uvicorn app:app`.
"""

from clubhouse.api.main import app  # noqa: F401
