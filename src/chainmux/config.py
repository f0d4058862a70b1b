"""Server configuration.

Everything the pounce runner needs to bind and serve a Router. Per-call
changes go through ``run(**overrides)``, never through mutation.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Settings for ``chainmux.server.runner.run``. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = ServerConfig(port=3000, workers=4)
    """

    host: str = "127.0.0.1"
    port: int = 8000

    # 0 = auto-detect from CPU count
    workers: int = 1
    reload: bool = False

    # Logging
    log_level: str = "info"
    lifecycle_logging: bool = True

    # Limits
    keep_alive_timeout: float = 5.0
    request_timeout: float = 30.0
