"""
App assembly entry point.

Builds the FastAPI `app` with the bundled example resources, e.g.
``uvicorn app:app``.
"""

from resourcekit.api.main import create_app

app = create_app()
