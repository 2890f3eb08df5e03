from __future__ import annotations

import datetime as _dt
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import requests

from .identity import ItemIdentity
from .utils import FetchError, get_http_session

logger = logging.getLogger(__name__)


GQL_ENDPOINT = "https://gql.tokopedia.com/graphql/PDPGetLayoutQuery"
GQL_OPERATION_NAME = "PDPGetLayoutQuery"
# Trimmed to the fields we read; the endpoint accepts any subset of the layout.
GQL_QUERY = """\
fragment ProductHighlight on pdpDataProductContent {
  name
  price {
    value
    currency
    priceFmt
    __typename
  }
  stock {
    useStock
    value
    stockWording
    __typename
  }
  __typename
}

query PDPGetLayoutQuery($shopDomain: String, $productKey: String, $layoutID: String, $apiVersion: Float, $userLocation: pdpUserLocation, $extParam: String, $tokonow: pdpTokoNow, $deviceID: String) {
  pdpGetLayout(shopDomain: $shopDomain, productKey: $productKey, layoutID: $layoutID, apiVersion: $apiVersion, userLocation: $userLocation, extParam: $extParam, tokonow: $tokonow, deviceID: $deviceID) {
    name
    components {
      name
      type
      position
      data {
        ...ProductHighlight
        __typename
      }
      __typename
    }
    __typename
  }
}"""
AKAMAI_HEADER = "pdpGetLayout"
PRODUCT_CONTENT = "product_content"


def _utcnow() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


@dataclass(frozen=True)
class ProductSnapshot:
    name: str
    price: int       # IDR, no minor unit
    stock: int
    fetched_at: _dt.datetime = field(default_factory=_utcnow, compare=False)


def _build_request(identity: ItemIdentity) -> tuple[dict, dict]:
    payload = {
        "query": GQL_QUERY,
        "operationName": GQL_OPERATION_NAME,
        "variables": {
            "shopDomain": identity.shop_domain,
            "productKey": identity.product_key,
            "apiVersion": 1,
        },
    }
    headers = {
        "Accept": "*/*",
        "Content-Type": "application/json",
        "Referer": identity.canonical_url,
        "X-Tkpd-Akamai": AKAMAI_HEADER,
    }
    return payload, headers


def _parse_int(value: Any, what: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise FetchError(f"Unable to decode product {what} - got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise FetchError(f"Unable to decode product {what} - got {value!r}")


def _product_content(body: Any) -> dict:
    try:
        components = body["data"]["pdpGetLayout"]["components"]
    except (KeyError, TypeError):
        components = None
    if not isinstance(components, list):
        raise FetchError(
            "Unable to fetch product content detail - It seems like Tokopedia changed their API!"
        )
    for component in components:
        if not isinstance(component, dict) or component.get("name") != PRODUCT_CONTENT:
            continue
        data = component.get("data")
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return data[0]
    raise FetchError(
        "Unable to fetch product content detail - It seems like Tokopedia changed their API!"
    )


def parse_product_response(body: Any) -> ProductSnapshot:
    """Extract a snapshot from a decoded PDPGetLayoutQuery response.

    Raises FetchError when the API reports an error or the payload does
    not have the expected shape.
    """
    if not isinstance(body, dict):
        raise FetchError("Unexpected response from Tokopedia - expected a JSON object")

    errors = body.get("errors")
    if errors:
        first = errors[0] if isinstance(errors, list) else errors
        message = first.get("message") if isinstance(first, dict) else None
        raise FetchError(f"Unable to fetch product data - {message or first!r}")

    data = _product_content(body)

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise FetchError("Unable to decode product name")
    price = _parse_int((data.get("price") or {}).get("value"), "price")
    stock = _parse_int((data.get("stock") or {}).get("value"), "stock")
    if price < 0:
        raise FetchError(f"Unable to decode product price - negative value {price}")
    if stock < 0:
        raise FetchError(f"Unable to decode product stock - negative value {stock}")

    return ProductSnapshot(name=name.strip(), price=price, stock=stock)


def fetch_product(
    identity: ItemIdentity,
    *,
    session: Optional[requests.Session] = None,
    timeout: float = 10.0,
    verify_tls: bool = True,
    endpoint: str = GQL_ENDPOINT,
) -> ProductSnapshot:
    """Fetch the current name, price and stock of one product.

    A single POST, no retries. Every failure (network, HTTP status,
    undecodable or unexpected payload) surfaces as FetchError.
    """
    close_session = False
    if session is None:
        session = get_http_session(verify_tls=verify_tls)
        close_session = True

    payload, headers = _build_request(identity)
    try:
        logger.info("Sending Tokopedia API request for %s", identity.serial_number)
        try:
            resp = session.post(endpoint, json=payload, headers=headers, timeout=timeout)
        except requests.RequestException as e:
            raise FetchError(f"Request to Tokopedia failed - {e}", transient=True) from e

        if not 200 <= resp.status_code < 300:
            raise FetchError(
                f"Tokopedia returned HTTP {resp.status_code}",
                status=resp.status_code,
                transient=resp.status_code >= 500,
            )

        try:
            body = resp.json()
        except ValueError as e:
            raise FetchError(f"Failed to read response body - {e}") from e
        logger.debug("Tokopedia response: %s", json.dumps(body, ensure_ascii=False)[:4000])
    finally:
        if close_session:
            session.close()

    snapshot = parse_product_response(body)
    logger.info("Product name: %s", snapshot.name)
    logger.info("Price: Rp. %d", snapshot.price)
    logger.info("Stock: %d", snapshot.stock)
    return snapshot


__all__ = ["ProductSnapshot", "fetch_product", "parse_product_response"]
