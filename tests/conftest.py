"""Shared fakes for the MQTT connection and the HTTP session."""
import pytest

from ha_tkpd.utils import PublishError


class FakeConnection:
    """Records publishes the way a retained-message broker would store them."""

    def __init__(self, fail_on=None, connect_error=None):
        self.fail_on = fail_on
        self.connect_error = connect_error
        self.published = []
        self.retained = {}
        self.connected = False
        self.connect_calls = 0
        self.disconnect_calls = 0

    def connect(self):
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    def publish(self, topic, payload, retain=True):
        if self.fail_on and self.fail_on in topic:
            raise PublishError(f"Publish to {topic} was not acknowledged")
        self.published.append((topic, payload, retain))
        if retain:
            self.retained[topic] = payload

    def disconnect(self):
        self.disconnect_calls += 1
        self.connected = False


class FakeResponse:
    def __init__(self, status_code=200, body=None, invalid_json=False):
        self.status_code = status_code
        self._body = body
        self._invalid_json = invalid_json

    def json(self):
        if self._invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.closed = False

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


def product_body(name="Example Item", price=150000, stock="12"):
    return {
        "data": {
            "pdpGetLayout": {
                "name": "Default",
                "components": [
                    {"name": "product_media", "type": "product_media", "data": [{}]},
                    {
                        "name": "product_content",
                        "type": "product_content",
                        "data": [
                            {
                                "name": name,
                                "price": {"value": price, "currency": "IDR"},
                                "stock": {"useStock": True, "value": stock},
                            }
                        ],
                    },
                ],
            }
        }
    }


@pytest.fixture
def fake_connection():
    return FakeConnection()
