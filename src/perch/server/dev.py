"""Serve a servlet with pounce.

Pounce's ``run()`` takes an import string (e.g. ``"myapp:servlet"``), but
we hold a live servlet object, so ``pounce.Server`` is used directly with
the ASGI callable.
"""


def run_server(servlet: object, host: str, port: int, *, reload: bool = False) -> None:
    """Start a single-worker pounce server for *servlet*."""
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(host=host, port=port, workers=1, reload=reload)
    Server(config, servlet).run()
