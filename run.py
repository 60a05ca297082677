"""
Entry point for the polystitch service.

Running this script with ``python run.py`` starts the FastAPI server
that exposes the path assembly API.  The ``backend`` directory is
added to the Python path so the ``polystitch`` package imports without
being installed.
"""

from __future__ import annotations

import sys
from pathlib import Path

import logging
import uvicorn


def main() -> None:
    """Run the Uvicorn server hosting the polystitch application."""
    backend_dir = Path(__file__).resolve().parent / "backend"
    if str(backend_dir) not in sys.path:
        sys.path.append(str(backend_dir))

    # Imported inside main() so sys.path is only touched when run as a script.
    from polystitch import config
    from polystitch.main import app

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    if config.ASSEMBLY_DEBUG:
        logging.getLogger("polystitch").setLevel(logging.DEBUG)

    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
