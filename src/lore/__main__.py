"""Lore Archive entrypoint.

Run with:
  python -m lore
"""

import logging
import os

import uvicorn

from lore.config import env_flag


def main() -> None:
    logging.basicConfig(
        level=os.getenv("LORE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = os.getenv("LORE_HOST", "0.0.0.0")
    port = int(os.getenv("LORE_PORT", "8000"))
    reload = env_flag("LORE_RELOAD")
    uvicorn.run("lore.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
