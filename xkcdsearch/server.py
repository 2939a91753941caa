"""Entry point that runs the comic search services behind one HTTP API."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from collections.abc import Sequence

from werkzeug.exceptions import HTTPException
from werkzeug.routing import Map, Rule
from werkzeug.serving import make_server

from .auth import TokenIssuer, login_app, require_superuser
from .config import ApiConfig, ConfigError, load_api_config, load_search_config, load_update_config
from .events import Broker, Publisher, Subscriber
from .gateway import SearchGateway, WordsGateway
from .initiator import IndexInitiator
from .limits import with_concurrency_limit, with_rate_limit
from .rest import (
    drop_handler,
    indexed_search_handler,
    ping_handler,
    search_handler,
    update_handler,
    update_stats_handler,
    update_status_handler,
)
from .search_service import SearchService
from .storage import Storage
from .update_service import UpdateService
from .words import WordsService
from .xkcd import XKCDClient

DB_UPDATED_SUBJECT = "xkcd.db.updated"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "ERROR": logging.ERROR,
}
_LOGGER_NAME = "xkcdsearch"
_FORMAT = "time=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s"


def make_logger(level: str) -> logging.Logger:
    """Return the package logger writing to stderr at ``level`` (DEBUG, INFO or ERROR)."""
    try:
        numeric = _LEVELS[level]
    except KeyError:
        raise ValueError(f"unknown log level: {level}") from None
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(numeric)
    if not any(getattr(h, "_xkcdsearch", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._xkcdsearch = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger


def build_api_app(config: ApiConfig, search, updater, words):
    """Return the WSGI app routing the HTTP API to ``search``, ``updater`` and ``words``."""
    issuer = TokenIssuer(config.token_ttl)
    endpoints = {
        "ping": ping_handler({"words": words, "update": updater, "search": search}),
        "login": login_app(config.admin_user, config.admin_password, issuer),
        "search": with_concurrency_limit(search_handler(search), config.search_concurrency),
        "isearch": with_rate_limit(indexed_search_handler(search), config.search_rate),
        "update": require_superuser(update_handler(updater), issuer),
        "stats": update_stats_handler(updater),
        "status": update_status_handler(updater),
        "drop": require_superuser(drop_handler(updater), issuer),
    }
    url_map = Map(
        [
            Rule("/api/ping", endpoint="ping", methods=["GET"]),
            Rule("/api/login", endpoint="login", methods=["POST"]),
            Rule("/api/search", endpoint="search", methods=["GET"]),
            Rule("/api/isearch", endpoint="isearch", methods=["GET"]),
            Rule("/api/db/update", endpoint="update", methods=["POST"]),
            Rule("/api/db/stats", endpoint="stats", methods=["GET"]),
            Rule("/api/db/status", endpoint="status", methods=["GET"]),
            Rule("/api/db", endpoint="drop", methods=["DELETE"]),
        ]
    )

    def app(environ, start_response):
        adapter = url_map.bind_to_environ(environ)
        try:
            endpoint, _ = adapter.match()
        except HTTPException as exc:
            return exc(environ, start_response)
        return endpoints[endpoint](environ, start_response)

    return app


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {address!r}")
    return host or "0.0.0.0", int(port)


def _raise_interrupt(signum, frame) -> None:
    raise KeyboardInterrupt


def main(argv: Sequence[str] | None = None) -> int:
    """Run every service in this process and serve the HTTP API until interrupted."""
    parser = argparse.ArgumentParser(prog="xkcdsearch")
    parser.add_argument("--config", default="config.yaml", help="server configuration file")
    args = parser.parse_args(argv)

    try:
        api_cfg = load_api_config(args.config)
        search_cfg = load_search_config(args.config)
        update_cfg = load_update_config(args.config)
    except ConfigError as exc:
        logging.getLogger(_LOGGER_NAME).error("cannot read config %r: %s", args.config, exc)
        return 1

    log = make_logger(api_cfg.log_level)
    log.info("starting server")
    log.debug("debug messages are enabled")

    try:
        host, port = _split_address(api_cfg.http.address)
        storage = Storage(update_cfg.db_address)
        storage.migrate()
    except Exception as exc:
        log.error("server failed: %s", exc)
        return 1

    stop = threading.Event()
    words = WordsGateway(WordsService())
    xkcd = XKCDClient(update_cfg.xkcd.url, update_cfg.xkcd.timeout)
    broker = Broker()
    publisher = Publisher(broker, DB_UPDATED_SUBJECT)
    subscriber = None
    try:
        updater = UpdateService(storage, xkcd, words, update_cfg.xkcd.concurrency, log)
        search = SearchService(storage, words)
        IndexInitiator(search, search_cfg.index_ttl).start(stop)
        subscriber = Subscriber(broker, DB_UPDATED_SUBJECT, search)
        subscriber.start(stop)

        app = build_api_app(
            api_cfg, SearchGateway(search), _gateway_for(updater, publisher), words
        )
        server = make_server(host, port, app, threaded=True)
        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGTERM, _raise_interrupt)
        log.info("running HTTP server: address=%s", api_cfg.http.address)
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            log.debug("shutting down server")
            server.server_close()
    except Exception as exc:
        log.error("server failed: %s", exc)
        return 1
    finally:
        stop.set()
        if subscriber is not None:
            subscriber.close()
        publisher.close()
        xkcd.close()
        storage.close()
    return 0


def _gateway_for(updater: UpdateService, publisher: Publisher):
    from .update_gateway import UpdateGateway

    return UpdateGateway(updater, publisher)


if __name__ == "__main__":
    sys.exit(main())