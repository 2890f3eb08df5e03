from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import Callable, Optional, Sequence

from . import __version__, config, discovery, identity, scraper, state
from .transport import BrokerConnection
from .utils import SyncError, UsageError, fetch_retrying

logger = logging.getLogger(__name__)


def setup_logging(level_name: str = "INFO") -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ha-tkpd",
        description="Tracks Tokopedia item prices via Home Assistant",
    )
    parser.add_argument("url", help="The Tokopedia URL for a price to be tracked")
    parser.add_argument("-u", "--username", dest="mqtt_username",
                        help="MQTT Broker username if required")
    parser.add_argument("-p", "--password", dest="mqtt_password",
                        help="MQTT Broker password if required")
    parser.add_argument("-s", "--server", dest="mqtt_host",
                        help=f"MQTT Broker host or IP (default: {config.DEFAULT_MQTT_HOST})")
    parser.add_argument("-x", "--port", dest="mqtt_port", type=int,
                        help=f"MQTT Broker port (default: {config.DEFAULT_MQTT_PORT})")
    parser.add_argument("-t", "--topic", dest="discovery_prefix",
                        help=f"HA MQTT autodiscover topic (default: {config.DEFAULT_DISCOVERY_PREFIX})")
    parser.add_argument("--delete", action="store_true",
                        help="Remove the tracked item's entities from Home Assistant")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_settings(args: argparse.Namespace, base: config.Settings) -> config.Settings:
    """Overlay command line options on top of environment settings."""
    overrides = {
        name: getattr(args, name)
        for name in ("mqtt_username", "mqtt_password", "mqtt_host", "mqtt_port", "discovery_prefix")
        if getattr(args, name) is not None
    }
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return dataclasses.replace(base, **overrides)


def _connection_for(settings: config.Settings, item: identity.ItemIdentity) -> BrokerConnection:
    return BrokerConnection(
        settings.mqtt_host,
        settings.mqtt_port,
        item.client_id,
        username=settings.mqtt_username,
        password=settings.mqtt_password,
        keepalive=settings.mqtt_keepalive,
        timeout=settings.mqtt_timeout_seconds,
    )


def sync_once(
    settings: config.Settings,
    url: str,
    delete: bool = False,
    *,
    fetch: Callable[..., scraper.ProductSnapshot] = scraper.fetch_product,
    connection_factory: Callable[[config.Settings, identity.ItemIdentity], BrokerConnection] = _connection_for,
) -> identity.ItemIdentity:
    """Run one synchronisation of ``url`` with Home Assistant.

    Identity first, then (unless deleting) the product fetch, then a single
    broker session: every config is acknowledged before any state is sent.
    Any failure raises a SyncError and nothing after it is attempted.
    """
    settings.validate()
    prefix = settings.topic_prefix

    item = identity.derive(url)
    logger.info("Shop: %s", item.shop_domain)
    logger.info("Product key: %s", item.product_key)
    logger.info("Hash: %s", item.digest)

    snapshot: Optional[scraper.ProductSnapshot] = None
    if not delete:
        for attempt in fetch_retrying(settings.fetch_attempts):
            with attempt:
                snapshot = fetch(
                    item,
                    timeout=settings.http_timeout_seconds,
                    verify_tls=settings.http_verify_tls,
                )

    conn = connection_factory(settings, item)
    conn.connect()
    try:
        if delete:
            discovery.publish_config(conn, item, None, prefix, deleting=True)
        else:
            discovery.publish_config(conn, item, snapshot, prefix)
            state.publish_state(conn, item, snapshot, prefix)
    finally:
        conn.disconnect()
    return item


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command line entry point; returns the process exit code."""
    config.load_env_file()
    args = build_parser().parse_args(argv)
    settings = build_settings(args, config.Settings.from_env())
    setup_logging(settings.log_level)

    if settings.mqtt_username and not settings.mqtt_password:
        logger.warning("MQTT Broker username is provided without password. Continuing...")

    try:
        sync_once(settings, args.url, delete=args.delete)
    except UsageError as e:
        logger.error("%s", e)
        return e.exit_code
    except SyncError as e:
        logger.error("%s", e)
        logger.debug("Sync failed", exc_info=True)
        return e.exit_code
    except Exception:
        logger.exception("Unexpected error during sync")
        return 1

    if args.delete:
        logger.info("Entities removed. Exiting...")
    else:
        logger.info("Everything looks successful. Exiting...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
