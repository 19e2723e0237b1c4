"""Uvicorn server runner with custom configuration."""

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from qrtransfer.app import App
from qrtransfer.config import Config
from qrtransfer.web.server import create_fastapi_app


def run_server(app: App, config: Config) -> None:
    """Run the Uvicorn server with custom logging configuration."""
    fastapi_app = create_fastapi_app(app, config)

    log_config = LOGGING_CONFIG.copy()
    log_config["formatters"]["access"]["fmt"] = '%(asctime)s - "%(request_line)s" %(status_code)s'
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s - %(levelname)s - %(message)s"

    # Open event streams are closed by the app on shutdown, so the grace period stays short
    uvicorn.run(
        fastapi_app,
        host=config.host,
        port=config.port,
        log_config=log_config,
        access_log=True,
        timeout_graceful_shutdown=5,
    )
