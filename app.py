"""
App assembly entry point.

Re-exports the FastAPI `app` from `profrate.api.main` so `uvicorn app:app`
works from the repository root.
"""

from profrate.api.main import app  # noqa: F401
