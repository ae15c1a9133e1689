"""
FastAPI/ASGI application entrypoint.

Settings are read from the environment when the app starts.
Run with: uvicorn backend_txwatch.api_server.app:app --host 0.0.0.0 --port 3000
"""

from backend_txwatch.api_server.server import create_app

app = create_app()

__all__ = ["app"]
