"""
Development server entry point.

Usage:
    python run.py                  # API on 127.0.0.1:8000
    python run.py --reload         # with auto-reload
    celery -A repochat.tasks.celery_app worker -Q indexing   # indexing worker
"""
import argparse

import uvicorn

from repochat.config import settings

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the RepoChat API")
    parser.add_argument("--reload", action="store_true", default=False)
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    uvicorn.run(
        "repochat.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.LOG_LEVEL.lower(),
    )
