"""MQTT broker connection for a single run.

Thin blocking wrapper around paho-mqtt: the network loop runs on paho's
background thread while callers wait for CONNACK and for each PUBACK.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Union

import paho.mqtt.client as mqtt

from .utils import ConnectError, PublishError

logger = logging.getLogger(__name__)

QOS_AT_LEAST_ONCE = 1


def _default_client_factory(client_id: str) -> mqtt.Client:
    return mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)


class BrokerConnection:
    """One MQTT session, opened with ``connect`` and closed with ``disconnect``."""

    def __init__(
        self,
        host: str,
        port: int,
        client_id: str,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        keepalive: int = 10,
        timeout: float = 10.0,
        client_factory: Callable[[str], Any] = _default_client_factory,
    ) -> None:
        self.host = host
        self.port = port
        self.client_id = client_id
        self.keepalive = keepalive
        self.timeout = timeout
        self._connected = threading.Event()
        self._connect_result: Optional[str] = None
        self._loop_running = False

        self._client = client_factory(client_id)
        if username:
            logger.info("Using provided MQTT credentials")
            self._client.username_pw_set(username, password or "")
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect

    # ---- paho callbacks (network thread) -----------------------------------

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if getattr(reason_code, "is_failure", False):
            self._connect_result = str(reason_code)
        else:
            self._connect_result = None
        self._connected.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        logger.debug("MQTT disconnected (%s)", reason_code)

    # ---- public API ---------------------------------------------------------

    def connect(self) -> None:
        logger.info("Connecting to MQTT broker %s:%d as %s", self.host, self.port, self.client_id)
        try:
            self._client.connect_timeout = self.timeout
            self._client.connect(self.host, self.port, keepalive=self.keepalive)
        except (OSError, ValueError) as e:
            raise ConnectError(f"Unable to connect to MQTT broker {self.host}:{self.port} - {e}") from e

        self._client.loop_start()
        self._loop_running = True

        if not self._connected.wait(self.timeout):
            self._stop()
            raise ConnectError(
                f"MQTT broker {self.host}:{self.port} did not acknowledge the connection "
                f"within {self.timeout:g}s"
            )
        if self._connect_result is not None:
            self._stop()
            raise ConnectError(f"MQTT broker refused the connection - {self._connect_result}")
        logger.info("Connected to MQTT broker")

    def publish(self, topic: str, payload: Union[str, bytes], retain: bool = True) -> None:
        """Publish at QoS 1 and block until the broker acknowledges it."""
        logger.debug("Publishing %d bytes to %s (retain=%s)", len(payload), topic, retain)
        try:
            info = self._client.publish(topic, payload, qos=QOS_AT_LEAST_ONCE, retain=retain)
        except ValueError as e:
            raise PublishError(f"Unable to publish to {topic} - {e}") from e
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"Unable to publish to {topic} - {mqtt.error_string(info.rc)}")
        try:
            info.wait_for_publish(timeout=self.timeout)
        except (RuntimeError, ValueError) as e:
            raise PublishError(f"Unable to publish to {topic} - {e}") from e
        if not info.is_published():
            raise PublishError(
                f"Publish to {topic} was not acknowledged within {self.timeout:g}s"
            )

    def disconnect(self) -> None:
        """Send DISCONNECT and stop the network loop. Safe to call twice."""
        if not self._loop_running:
            return
        try:
            self._client.disconnect()
        finally:
            self._stop()
        logger.info("Disconnected from MQTT broker")

    def _stop(self) -> None:
        if self._loop_running:
            self._client.loop_stop()
            self._loop_running = False

    def __enter__(self) -> "BrokerConnection":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()


__all__ = ["BrokerConnection", "QOS_AT_LEAST_ONCE"]
