"""Application entry point for the idblock ticket server."""

from idblock.app import App
from idblock.config import Config
from idblock.logging import setup_logging
from idblock.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
