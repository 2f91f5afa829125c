"""Run the receiver with uvicorn: ``python -m picallback``."""
import uvicorn

from picallback.config import get_settings


def main() -> None:
    settings = get_settings()
    # uvicorn handles SIGINT/SIGTERM and drains in-flight requests before exiting.
    uvicorn.run(
        "picallback.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        log_config=None,
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
