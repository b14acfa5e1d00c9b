"""
Server entrypoint for the watermark remover.

Architectural role:
- Configures logging for the process.
- Starts uvicorn with the `create_app` factory from `http_api`.

Configuration:
- `HOST` (default `127.0.0.1`), `PORT` (default `8000`), `LOG_LEVEL` (default `INFO`).
- Model and credential settings are read by `editing.provider_config`.
"""

import logging
import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()


def main():
    """Run the HTTP server until interrupted."""
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "watermark_nuker.api.http_api:create_app",
        factory=True,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_level=level.lower(),
    )


if __name__ == "__main__":
    main()
