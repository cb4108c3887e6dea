"""
Tab Companion Backend Server Entry Point

Starts the FastAPI server for the Tab Companion backend.

Usage:
    python examples/start_server.py
"""

import sys

from tab_companion.config import get_settings, setup_logging


def main():
    """Start the FastAPI server."""

    print("=" * 80)
    print("Tab Companion Backend Server")
    print("=" * 80)
    print()

    settings = get_settings()
    setup_logging(settings.log_level)
    print("✓ Configuration loaded")
    print(f"  - OpenAI: {'enabled' if settings.openai_api_key else 'disabled (TF-IDF and domain only)'}")
    print(f"  - Summarizer: {settings.summarizer_provider}")
    print(f"  - Deadline: {settings.scan_deadline_seconds}s, concurrency: {settings.scan_concurrency}")
    print()

    print("Starting FastAPI server...")
    print("Server will be available at: http://localhost:8000")
    print("API documentation: http://localhost:8000/docs")
    print()
    print("Press Ctrl+C to stop the server")
    print("=" * 80)
    print()

    import uvicorn
    from tab_companion.server.app import app

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
        reload=False,  # Set to True for development
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\nServer stopped by user")
        sys.exit(0)
