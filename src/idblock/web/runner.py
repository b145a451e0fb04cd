"""Serve the HTTP API under uvicorn."""

import copy
from typing import Any

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from idblock.app import App
from idblock.config import Config
from idblock.web.server import create_fastapi_app

DEFAULT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
ACCESS_FORMAT = '%(asctime)s - %(client_addr)s - "%(request_line)s" %(status_code)s'


def uvicorn_log_config() -> dict[str, Any]:
    """Uvicorn's logging dict with idblock formats; uvicorn's module default is left untouched."""
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config["formatters"]["default"]["fmt"] = DEFAULT_FORMAT
    log_config["formatters"]["access"]["fmt"] = ACCESS_FORMAT
    return log_config


def run_server(app: App, config: Config) -> None:
    uvicorn.run(
        create_fastapi_app(app, config),
        host=config.host,
        port=config.port,
        log_config=uvicorn_log_config(),
        log_level="debug" if config.debug else "info",
        access_log=True,
    )
