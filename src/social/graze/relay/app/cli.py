import os
from aiohttp import web
import logging
from logging.config import dictConfig
import json

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool = False):
    """
    Configure logging from ``LOGGING_CONFIG_FILE`` when it names a dictConfig JSON file.

    Otherwise log to stderr at ``LOG_LEVEL``, which defaults to DEBUG in debug mode and
    INFO without it.
    """
    logging_config_file = os.getenv("LOGGING_CONFIG_FILE", "")
    if logging_config_file:
        with open(logging_config_file) as fl:
            dictConfig(json.load(fl))
        return

    default_level = "DEBUG" if debug else "INFO"
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(os.getenv("LOG_LEVEL", default_level).upper())


def invoke():
    from social.graze.relay.app.config import Settings
    from social.graze.relay.app.server import start_web_server

    settings = Settings()  # type: ignore
    configure_logging(settings.debug)

    logging.getLogger(__name__).info(
        "Relaying Discord API at %s on port %d",
        settings.discord_api_base,
        settings.http_port,
    )
    web.run_app(start_web_server(settings), port=settings.http_port)


if __name__ == "__main__":
    invoke()
