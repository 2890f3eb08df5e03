"""Sensor state messages."""

from __future__ import annotations

import json
import logging
from typing import List

from .discovery import SENSORS, SensorDescriptor, state_topic
from .identity import ItemIdentity
from .scraper import ProductSnapshot

logger = logging.getLogger(__name__)


def state_payload(sensor: SensorDescriptor, snapshot: ProductSnapshot) -> str:
    """Serialise one sensor value: raw text for the name, JSON numbers otherwise."""
    value = getattr(snapshot, sensor.kind)
    if isinstance(value, str):
        return value
    return json.dumps(value)


def publish_state(
    conn,
    identity: ItemIdentity,
    snapshot: ProductSnapshot,
    prefix: str,
) -> List[str]:
    """Publish the retained state of every sensor; returns the topics used."""
    topics: List[str] = []
    for sensor in SENSORS:
        topic = state_topic(prefix, identity, sensor)
        logger.info("Updating %s value (%s)", sensor.kind, topic)
        conn.publish(topic, state_payload(sensor, snapshot), retain=True)
        topics.append(topic)
    return topics


__all__ = ["state_payload", "publish_state"]
