"""
ASGI application for the auth API.

    uvicorn asgi:app --host 0.0.0.0 --port 8000

The email worker runs separately: python start_worker.py
"""

from app import create_app

app = create_app()
