"""Entry point for running the application with uvicorn."""

import uvicorn

from farm_ops.config import get_settings


def main() -> None:
    """Run the application."""
    settings = get_settings()
    uvicorn.run(
        "farm_ops.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
