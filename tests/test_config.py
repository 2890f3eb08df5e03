"""Tests for settings loading and validation."""
import pytest

from ha_tkpd.config import Settings
from ha_tkpd.utils import UsageError


def test_defaults():
    s = Settings.from_env({})
    assert s.mqtt_host == "localhost"
    assert s.mqtt_port == 1883
    assert s.discovery_prefix == "homeassistant"
    assert s.fetch_attempts == 1
    assert s.http_verify_tls is True
    s.validate()


def test_from_env():
    s = Settings.from_env({
        "MQTT_HOST": "mqtt.local",
        "MQTT_PORT": "8883",
        "MQTT_USERNAME": "ha",
        "MQTT_PASSWORD": "pw",
        "HA_DISCOVERY_PREFIX": "/ha/",
        "HTTP_VERIFY_TLS": "false",
        "FETCH_ATTEMPTS": "3",
        "MQTT_TIMEOUT_SECONDS": "2.5",
    })
    assert (s.mqtt_host, s.mqtt_port) == ("mqtt.local", 8883)
    assert (s.mqtt_username, s.mqtt_password) == ("ha", "pw")
    assert s.topic_prefix == "ha"
    assert s.http_verify_tls is False
    assert s.fetch_attempts == 3
    assert s.mqtt_timeout_seconds == 2.5


def test_bad_numbers_fall_back_to_defaults():
    s = Settings.from_env({"MQTT_PORT": "abc", "HTTP_TIMEOUT_SECONDS": "soon"})
    assert s.mqtt_port == 1883
    assert s.http_timeout_seconds == 10.0


def test_empty_values_mean_unset():
    s = Settings.from_env({"MQTT_USERNAME": "", "MQTT_HOST": ""})
    assert s.mqtt_username is None
    assert s.mqtt_host == "localhost"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"mqtt_password": "pw"},
        {"mqtt_port": 0},
        {"mqtt_port": 70000},
        {"discovery_prefix": "/"},
        {"discovery_prefix": "home/#"},
        {"mqtt_timeout_seconds": 0},
    ],
)
def test_validate_rejects(kwargs):
    with pytest.raises(UsageError):
        Settings(**kwargs).validate()


def test_username_without_password_is_allowed():
    Settings(mqtt_username="ha").validate()
