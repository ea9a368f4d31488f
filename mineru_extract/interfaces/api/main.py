from __future__ import annotations

import os

import uvicorn

from mineru_extract.shared.config import get_settings

from mineru_extract.interfaces.api.app import create_app


app = create_app()


def main() -> None:
    settings = get_settings()
    reload = os.getenv("MINERU_EXTRACT_API_RELOAD", "0").strip().lower() in {"1", "true", "yes"}
    uvicorn.run(
        "mineru_extract.interfaces.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=reload,
    )


if __name__ == "__main__":
    main()
