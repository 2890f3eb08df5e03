"""Stable identity for a tracked Tokopedia listing.

The identity digest is used in topic names, unique ids and the MQTT client
id, so it must never change for a given product. It is BLAKE2s (4 byte
digest) over the shop domain followed directly by the product key, which is
what earlier releases hashed as well.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from urllib.parse import urlsplit

from .utils import InvalidURLError

TOKOPEDIA_HOSTS = ("tokopedia.com", "www.tokopedia.com")
DIGEST_SIZE = 4


@dataclass(frozen=True)
class ItemIdentity:
    shop_domain: str
    product_key: str
    digest: str

    @property
    def canonical_url(self) -> str:
        return f"https://www.tokopedia.com/{self.shop_domain}/{self.product_key}"

    @property
    def serial_number(self) -> str:
        return f"{self.shop_domain}/{self.product_key}"

    @property
    def unique_id_prefix(self) -> str:
        return f"tkpdprice-{self.digest}"

    @property
    def client_id(self) -> str:
        return f"ha-tkpd-{self.digest}"


def _split_product_url(url: str) -> tuple[str, str]:
    raw = (url or "").strip()
    try:
        parts = urlsplit(raw)
        host = (parts.hostname or "").lower()
    except ValueError as exc:
        raise InvalidURLError(f"Unable to parse URL - {exc}") from exc

    if parts.scheme.lower() not in ("http", "https"):
        raise InvalidURLError(f"Unable to parse URL - {raw!r} is not an http(s) URL")
    if host not in TOKOPEDIA_HOSTS:
        raise InvalidURLError(
            "Wrong URL - This tool currently only supports tokopedia.com urls"
        )

    segments = [s for s in parts.path.split("/") if s]
    if not segments:
        raise InvalidURLError("Wrong URL format - Seems like you've pasted in a base URL")
    if len(segments) < 2:
        raise InvalidURLError(
            "Wrong URL format - Product key is empty. Did you copy a product URL?"
        )
    return segments[0], segments[1]


def canonicalize(url: str) -> str:
    """Return the canonical product URL used for hashing.

    Query strings (tracking parameters such as ``extParam`` or
    ``utm_source``), fragments, trailing slashes, the ``www.`` prefix and
    any path segments after the product key are dropped. Segment case and
    percent-encoding are kept exactly as given.
    """
    shop_domain, product_key = _split_product_url(url)
    return f"https://www.tokopedia.com/{shop_domain}/{product_key}"


def derive(url: str) -> ItemIdentity:
    shop_domain, product_key = _split_product_url(url)
    hasher = hashlib.blake2s(digest_size=DIGEST_SIZE)
    hasher.update(shop_domain.encode("utf-8"))
    hasher.update(product_key.encode("utf-8"))
    return ItemIdentity(
        shop_domain=shop_domain,
        product_key=product_key,
        digest=hasher.hexdigest(),
    )


__all__ = ["ItemIdentity", "canonicalize", "derive"]
