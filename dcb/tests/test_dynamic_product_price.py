"""
Grace period pricing.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from dcb.core.clock import DeterministicClock
from dcb.core.errors import ValidationError
from dcb.domains.dynamic_product_price import (
    DynamicProductPrice,
    MultipleProductsOrdered,
    OrderMultipleProducts,
    OrderProduct,
    ProductDefined,
    ProductPrice,
    ProductPriceChanged,
)
from dcb.log.memory_store import InMemoryEventStore


def _api():
    clock = DeterministicClock(datetime(2024, 6, 1, tzinfo=timezone.utc))
    store = InMemoryEventStore(clock=clock, registry=DynamicProductPrice.event_types)
    return DynamicProductPrice(store), clock


def test_product_price_accepts():
    price = ProductPrice(last_valid_old_price=100, valid_new_prices=(110, 120))

    assert price.accepts(100)
    assert price.accepts(120)
    assert not price.accepts(105)
    assert not ProductPrice().accepts(0)


def test_old_price_expires_with_grace_period():
    api, clock = _api()
    api.store.append(ProductDefined(product_id="p1", price=100))
    clock.advance(timedelta(minutes=30))
    api.store.append(ProductPriceChanged(product_id="p1", new_price=110))

    clock.advance(timedelta(minutes=5))
    api.call(OrderProduct(product_id="p1", displayed_price=100))

    clock.advance(timedelta(minutes=6))
    with pytest.raises(ValidationError, match="invalid price for product p1"):
        api.call(OrderProduct(product_id="p1", displayed_price=100))
    api.call(OrderProduct(product_id="p1", displayed_price=110))


def test_multi_order_rejects_whole_batch_on_one_bad_price():
    api, _ = _api()
    api.store.append(
        [ProductDefined(product_id="p1", price=100), ProductDefined(product_id="p2", price=200)]
    )

    with pytest.raises(ValidationError, match="invalid price for product p2"):
        api.call(
            OrderMultipleProducts(
                items=[
                    {"product_id": "p1", "displayed_price": 100},
                    {"product_id": "p2", "displayed_price": 999},
                ]
            )
        )

    assert api.store.head == 2


def test_multi_order_tags_every_product():
    api, _ = _api()
    api.store.append(
        [ProductDefined(product_id="p1", price=100), ProductDefined(product_id="p2", price=200)]
    )

    api.call(
        OrderMultipleProducts(
            items=[
                {"product_id": "p1", "displayed_price": 100},
                {"product_id": "p2", "displayed_price": 200},
            ]
        )
    )

    assert api.store.get(3).tags == ("product:p1", "product:p2")


def test_multi_order_requires_items():
    with pytest.raises(PydanticValidationError):
        OrderMultipleProducts(items=())


def test_stored_order_items_are_detached_from_payload():
    api, _ = _api()
    api.store.append(ProductDefined(product_id="p1", price=100))
    items = [{"product_id": "p1", "price": 100}]

    api.store.append(MultipleProductsOrdered(items=items))
    items[0]["price"] = 1
    items.append({"product_id": "p2", "price": 2})

    assert api.store.get(2).data["items"] == [{"product_id": "p1", "price": 100}]
