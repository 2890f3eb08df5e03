"""Home Assistant MQTT discovery payloads.

Each tracked product becomes one device with three sensors (name, price,
stock). Configs are retained so Home Assistant recreates the entities after
a restart; an empty retained payload on the same topic removes the entity.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List, Optional

from . import __version__
from .identity import ItemIdentity
from .scraper import ProductSnapshot

logger = logging.getLogger(__name__)

PACKAGE_NAME = "ha-tkpd"
SUPPORT_URL = "https://github.com/angeloanan/ha-tkpd-tracker"


@dataclass(frozen=True)
class SensorDescriptor:
    kind: str
    label: str
    device_class: Optional[str] = None
    unit_of_measurement: Optional[str] = None
    state_class: Optional[str] = None
    icon: Optional[str] = None


NAME = SensorDescriptor(kind="name", label="Name", icon="mdi:tag-text")
# monetary sensors only allow state_class "total", so none is set
PRICE = SensorDescriptor(kind="price", label="Price", device_class="monetary", unit_of_measurement="IDR")
STOCK = SensorDescriptor(kind="stock", label="Stock", state_class="measurement", icon="mdi:package-variant")

SENSORS = (NAME, PRICE, STOCK)


def sensor_topic(prefix: str, identity: ItemIdentity, sensor: SensorDescriptor, leaf: str) -> str:
    return f"{prefix.strip('/')}/sensor/{identity.digest}/{sensor.kind}/{leaf}"


def config_topic(prefix: str, identity: ItemIdentity, sensor: SensorDescriptor) -> str:
    return sensor_topic(prefix, identity, sensor, "config")


def state_topic(prefix: str, identity: ItemIdentity, sensor: SensorDescriptor) -> str:
    return sensor_topic(prefix, identity, sensor, "state")


def build_config(
    sensor: SensorDescriptor,
    identity: ItemIdentity,
    snapshot: ProductSnapshot,
    prefix: str,
) -> dict:
    """Return the discovery config for one sensor of one product."""
    config = {
        "origin": {
            "name": PACKAGE_NAME,
            "support_url": SUPPORT_URL,
            "sw_version": __version__,
        },
        "device": {
            "identifiers": [identity.unique_id_prefix],
            "name": snapshot.name,
            "manufacturer": identity.shop_domain,
            "model": "Tokopedia",
            "serial_number": identity.serial_number,
            "configuration_url": identity.canonical_url,
        },
        "platform": "sensor",
        "force_update": True,
        "unique_id": f"{identity.unique_id_prefix}-{sensor.kind}",
        "object_id": f"tkpd_{identity.digest}_{sensor.kind}",
        "name": sensor.label,
        "state_topic": state_topic(prefix, identity, sensor),
    }
    for key in ("device_class", "unit_of_measurement", "state_class", "icon"):
        value = getattr(sensor, key)
        if value is not None:
            config[key] = value
    return config


def encode_config(config: dict) -> str:
    # Stable key order keeps repeated runs byte-identical.
    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def publish_config(
    conn,
    identity: ItemIdentity,
    snapshot: Optional[ProductSnapshot],
    prefix: str,
    deleting: bool = False,
) -> List[str]:
    """Publish (or clear) the retained discovery configs for all sensors.

    Each publish is acknowledged before the next one starts, so when this
    returns every entity is declared (or removed). Returns the topics
    published, in order.
    """
    if not deleting and snapshot is None:
        raise ValueError("a snapshot is required unless deleting")

    topics: List[str] = []
    for sensor in SENSORS:
        topic = config_topic(prefix, identity, sensor)
        if deleting:
            payload = ""
            logger.info("Removing %s entity (%s)", sensor.kind, topic)
        else:
            payload = encode_config(build_config(sensor, identity, snapshot, prefix))
            logger.info("Sending %s config (%s)", sensor.kind, topic)
        conn.publish(topic, payload, retain=True)
        topics.append(topic)
    return topics


__all__ = [
    "SensorDescriptor",
    "SENSORS",
    "config_topic",
    "state_topic",
    "build_config",
    "encode_config",
    "publish_config",
]
