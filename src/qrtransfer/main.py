"""Application entry point for the QR Transfer relay server."""

from qrtransfer.app import App
from qrtransfer.config import Config
from qrtransfer.logging import setup_logging
from qrtransfer.web.runner import run_server


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
