"""Main entry point: serve the citation API."""
import logging

from .config import Config
from .utils.logging_setup import setup_logging
from .web import create_app


def main() -> None:
    """Program entry point."""
    setup_logging(Config.LOG_DIR, Config.LOG_LEVEL)
    app = create_app()
    logging.info("Citation engine API started")
    try:
        app.run(debug=False)
    finally:
        logging.info("Citation engine API finished")


if __name__ == "__main__":
    main()
