"""
Module runner for the Pay Scale Backend.

    python -m payscale_backend.run

loads environment variables and starts uvicorn with the configured host/port.
The ASGI app itself lives at `payscale_backend.api.main:app`.
"""

import os

import uvicorn
from dotenv import load_dotenv


def _bool_env(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


# PUBLIC_INTERFACE
def main():
    """Entry point to start the FastAPI server with environment-based configuration."""
    # Load environment variables from .env if present (no hardcoding of secrets)
    load_dotenv()

    port = int(os.getenv("PORT", "3001"))
    host = os.getenv("HOST", "0.0.0.0")
    log_level = os.getenv("LOG_LEVEL", "info").lower()
    reload = _bool_env("RELOAD", False)

    uvicorn.run(
        "payscale_backend.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
