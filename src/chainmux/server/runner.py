"""Serve an ASGI app with pounce.

pounce is an optional dependency (``pip install chainmux[server]``); any
other ASGI server can serve ``router.asgi()`` just as well.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

from chainmux.config import ServerConfig
from chainmux.errors import ConfigurationError

logger = logging.getLogger("chainmux.server")


def run(app: Any, config: ServerConfig | None = None, **overrides: Any) -> None:
    """Start a pounce server for *app* and block until it stops.

    Args:
        app: ASGI callable (usually ``router.asgi()``).
        config: Server settings. Defaults to ``ServerConfig()``.
        overrides: Fields of *config* to replace, e.g. ``port=3000``.

    Raises:
        ConfigurationError: If pounce is not installed or an override
            names an unknown setting.
    """
    config = config or ServerConfig()
    if overrides:
        try:
            config = dataclasses.replace(config, **overrides)
        except TypeError as exc:
            msg = f"Unknown server setting: {exc}"
            raise ConfigurationError(msg) from exc

    try:
        from pounce.config import ServerConfig as PounceConfig
        from pounce.server import Server
    except ImportError as exc:
        msg = "Serving requires pounce. Install it with: pip install chainmux[server]"
        raise ConfigurationError(msg) from exc

    pounce_config = PounceConfig(
        host=config.host,
        port=config.port,
        workers=config.workers,
        reload=config.reload,
        log_level=config.log_level,
        lifecycle_logging=config.lifecycle_logging,
        keep_alive_timeout=config.keep_alive_timeout,
        request_timeout=config.request_timeout,
    )
    logger.info("serving on http://%s:%d (workers=%d)", config.host, config.port, config.workers)
    Server(pounce_config, app).run()
