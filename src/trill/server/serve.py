"""Run the runtime under pounce.

Pounce's ``run()`` takes an import string, but trill has a live runtime
object, so ``pounce.Server`` is used directly with the ASGI callable.
Development runs a single worker: the dev loop and its reload channel
live in that one process.
"""

import logging

logger = logging.getLogger("trill.server")


def run_server(app: object, host: str, port: int, *, workers: int = 1) -> None:
    """Serve *app* until interrupted.

    Args:
        app: ASGI callable (the trill runtime).
        host: Bind host address.
        port: Bind port number.
        workers: Worker count; ``0`` lets pounce decide.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(host=host, port=port, workers=workers, reload=False)
    logger.info("Serving on http://%s:%d", host, port)
    Server(config, app).run()

