"""Run the StatusWatch API server: ``python -m statuswatch``."""

import os

import uvicorn

from statuswatch.config import get_config_provider


def main():
    settings = get_config_provider().load()
    uvicorn.run(
        "statuswatch.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
