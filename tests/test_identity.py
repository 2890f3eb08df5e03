"""Tests for identity derivation."""
import hashlib

import pytest

from ha_tkpd.identity import canonicalize, derive
from ha_tkpd.utils import InvalidURLError, UsageError


URL = "https://tokopedia.com/shop/example-item-21e0"


def test_derive_matches_blake2s_of_shop_and_key():
    """Digest is BLAKE2s-32 over shop domain then product key."""
    expected = hashlib.blake2s(b"shopexample-item-21e0", digest_size=4).hexdigest()
    item = derive(URL)
    assert item.digest == expected
    assert len(item.digest) == 8
    assert item.shop_domain == "shop"
    assert item.product_key == "example-item-21e0"


def test_derive_is_deterministic():
    assert derive(URL) == derive(URL)


@pytest.mark.parametrize(
    "variant",
    [
        "https://www.tokopedia.com/shop/example-item-21e0",
        "https://tokopedia.com/shop/example-item-21e0/",
        "https://tokopedia.com/shop/example-item-21e0?extParam=ivf%3Dfalse&src=topads",
        "https://www.tokopedia.com/shop/example-item-21e0?utm_source=x#reviews",
        "http://TOKOPEDIA.com:443/shop/example-item-21e0",
        "https://tokopedia.com/shop/example-item-21e0/review",
        "  https://tokopedia.com//shop/example-item-21e0  ",
    ],
)
def test_cosmetic_variants_converge(variant):
    """Tracking parameters and other cosmetic changes keep the same identity."""
    assert canonicalize(variant) == canonicalize(URL)
    assert derive(variant) == derive(URL)


def test_canonical_form():
    assert canonicalize(URL) == "https://www.tokopedia.com/shop/example-item-21e0"
    assert derive(URL).canonical_url == canonicalize(URL)


def test_different_items_differ():
    assert derive(URL).digest != derive("https://tokopedia.com/shop/other-item").digest
    assert derive(URL).digest != derive("https://tokopedia.com/shop2/example-item-21e0").digest


def test_identity_helpers():
    item = derive(URL)
    assert item.unique_id_prefix == f"tkpdprice-{item.digest}"
    assert item.client_id == f"ha-tkpd-{item.digest}"
    assert item.serial_number == "shop/example-item-21e0"


@pytest.mark.parametrize(
    "bad",
    [
        "",
        "not a url",
        "ftp://tokopedia.com/shop/item",
        "https://shopee.co.id/shop/item",
        "https://evil-tokopedia.com/shop/item",
        "https://tokopedia.com/",
        "https://tokopedia.com/shop",
        "https://tokopedia.com/shop/",
    ],
)
def test_malformed_urls_are_usage_errors(bad):
    with pytest.raises(InvalidURLError):
        derive(bad)


def test_invalid_url_error_is_usage_error():
    assert issubclass(InvalidURLError, UsageError)
    assert InvalidURLError.exit_code == 2
