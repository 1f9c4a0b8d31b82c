"""Run the gateway with uvicorn: ``python -m claudish``.

Host, port and everything else come from the environment (see
:class:`claudish.config.Settings`).
"""

import uvicorn

from claudish.api import create_app
from claudish.config.settings import Settings


def main() -> None:
    settings = Settings()
    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,
        access_log=False,
    )


if __name__ == "__main__":
    main()
