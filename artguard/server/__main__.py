"""Web server entrypoint.

Runs the Starlette web application using uvicorn. For production,
use uvicorn directly with appropriate workers:

    uvicorn artguard.server:app --host 0.0.0.0 --port 8000 --workers 2

Each worker keeps its own notification rate limiter.

Usage: python -m artguard.server
"""

import uvicorn


def main() -> None:
    """Run the web server for local development."""
    uvicorn.run(
        "artguard.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )


if __name__ == "__main__":
    main()
