import logging
import os

import uvicorn

from galleryharvest.api.server import create_app
from galleryharvest.container import Container
from galleryharvest.db.engine import init_db

logger = logging.getLogger(__name__)


def main(container: Container = None):
    """Wire the container, start background services and serve the API.

    Tests pass a pre-configured `container` and patch `uvicorn.run`.
    """
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    container = container or Container()
    init_db(container.db_engine())

    orchestrator = container.orchestrator()
    sweeper = container.cache_sweeper()
    sweeper.start()

    app = create_app(container)
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    logger.info("GalleryHarvest API listening on %s:%s", host, port)
    try:
        uvicorn.run(app, host=host, port=port)
    finally:
        sweeper.shutdown(wait=False)
        orchestrator.shutdown(clear_cache=True)


if __name__ == '__main__':
    main()
