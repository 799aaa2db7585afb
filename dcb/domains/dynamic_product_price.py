"""
Orders against prices that change.

A customer may still order at the previous price for GRACE_PERIOD after a
change, so a displayed price is accepted if it is the last price that went
out of date before the grace window, or any price set within it.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..api import Api, handles
from ..core.errors import ValidationError
from ..core.events import Event, EventType, EventTypeRegistry
from ..core.projection import Projection
from ..decision import build_decision_model
from ..scenario import Scenario, ago

GRACE_PERIOD = timedelta(minutes=10)

ProductDefined = EventType("ProductDefined", tags=lambda d: f"product:{d['product_id']}")
ProductPriceChanged = EventType("ProductPriceChanged", tags=lambda d: f"product:{d['product_id']}")
ProductOrdered = EventType("ProductOrdered", tags=lambda d: f"product:{d['product_id']}")
MultipleProductsOrdered = EventType(
    "MultipleProductsOrdered",
    tags=lambda d: [f"product:{item['product_id']}" for item in d["items"]],
)

EVENT_TYPES = EventTypeRegistry(
    [ProductDefined, ProductPriceChanged, ProductOrdered, MultipleProductsOrdered]
)


class OrderProduct(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    displayed_price: int


class OrderItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    displayed_price: int


class OrderMultipleProducts(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: Tuple[OrderItem, ...] = Field(min_length=1)


@dataclass(frozen=True)
class ProductPrice:
    last_valid_old_price: Optional[int] = None
    valid_new_prices: Tuple[int, ...] = ()

    def accepts(self, price: int) -> bool:
        return price == self.last_valid_old_price or price in self.valid_new_prices


def product_price(product_id: str, now: datetime) -> Projection:
    grace_start = now - GRACE_PERIOD

    def on_defined(state: ProductPrice, event: Event) -> ProductPrice:
        if event.timestamp >= grace_start:
            return ProductPrice(valid_new_prices=(event.data["price"],))
        return ProductPrice(last_valid_old_price=event.data["price"])

    def on_price_changed(state: ProductPrice, event: Event) -> ProductPrice:
        new_price = event.data["new_price"]
        if event.timestamp >= grace_start:
            return replace(state, valid_new_prices=state.valid_new_prices + (new_price,))
        return replace(state, last_valid_old_price=new_price)

    return (
        Projection.for_tags(f"product:{product_id}")
        .init(ProductPrice())
        .when(ProductDefined, on_defined)
        .when(ProductPriceChanged, on_price_changed)
    )


class DynamicProductPrice(Api):
    event_types = EVENT_TYPES

    @handles(OrderProduct)
    def order_product(self, command: OrderProduct) -> List[int]:
        model, query, append_condition = self.build_decision_model(
            product_price=product_price(command.product_id, self.now())
        )

        if not model.product_price.accepts(command.displayed_price):
            raise ValidationError(f"invalid price for product {command.product_id}")

        return self.store.append(
            ProductOrdered(product_id=command.product_id, price=command.displayed_price),
            query,
            append_condition,
        )

    @handles(OrderMultipleProducts)
    def order_multiple_products(self, command: OrderMultipleProducts) -> List[int]:
        now = self.now()
        # keyed by product id; ids need not be identifiers
        model, query, append_condition = build_decision_model(
            self.store,
            {item.product_id: product_price(item.product_id, now) for item in command.items},
        )

        for item in command.items:
            if not model[item.product_id].accepts(item.displayed_price):
                raise ValidationError(f"invalid price for product {item.product_id}")

        return self.store.append(
            MultipleProductsOrdered(
                items=[
                    {"product_id": item.product_id, "price": item.displayed_price}
                    for item in command.items
                ]
            ),
            query,
            append_condition,
        )


SCENARIOS = [
    Scenario("Order product with invalid displayed price")
    .given(ProductDefined(product_id="p1", price=123))
    .when(OrderProduct(product_id="p1", displayed_price=100))
    .expect_error("invalid price for product p1"),
    Scenario("Order product with valid displayed price")
    .given(ProductDefined(product_id="p1", price=123))
    .when(OrderProduct(product_id="p1", displayed_price=123))
    .expect_event(ProductOrdered(product_id="p1", price=123)),
    Scenario("Order product with a displayed price that was never valid")
    .given(ProductDefined(product_id="p1", price=123).at(ago(minutes=20)))
    .when(OrderProduct(product_id="p1", displayed_price=100))
    .expect_error("invalid price for product p1"),
    Scenario("Order product with a price that was changed more than 10 minutes ago")
    .given(
        ProductDefined(product_id="p1", price=123).at(ago(minutes=20)),
        ProductPriceChanged(product_id="p1", new_price=134).at(ago(minutes=20)),
    )
    .when(OrderProduct(product_id="p1", displayed_price=123))
    .expect_error("invalid price for product p1"),
    Scenario("Order product with initial valid price")
    .given(ProductDefined(product_id="p1", price=123).at(ago(minutes=20)))
    .when(OrderProduct(product_id="p1", displayed_price=123))
    .expect_event(ProductOrdered(product_id="p1", price=123)),
    Scenario("Order product with a price that was changed less than 10 minutes ago")
    .given(
        ProductDefined(product_id="p1", price=123).at(ago(minutes=20)),
        ProductPriceChanged(product_id="p1", new_price=134).at(ago(minutes=9)),
    )
    .when(OrderProduct(product_id="p1", displayed_price=123))
    .expect_event(ProductOrdered(product_id="p1", price=123)),
    Scenario("Order product with valid new price")
    .given(
        ProductDefined(product_id="p1", price=123).at(ago(minutes=20)),
        ProductPriceChanged(product_id="p1", new_price=134).at(ago(minutes=9)),
    )
    .when(OrderProduct(product_id="p1", displayed_price=134))
    .expect_event(ProductOrdered(product_id="p1", price=134)),
    Scenario("Multi: Order product with a displayed price that was never valid")
    .given(ProductDefined(product_id="p1", price=123).at(ago(minutes=20)))
    .when(OrderMultipleProducts(items=[{"product_id": "p1", "displayed_price": 100}]))
    .expect_error("invalid price for product p1"),
    Scenario("Multi: Order product with a price that was changed more than 10 minutes ago")
    .given(
        ProductDefined(product_id="p1", price=123).at(ago(minutes=20)),
        ProductPriceChanged(product_id="p1", new_price=134).at(ago(minutes=20)),
    )
    .when(OrderMultipleProducts(items=[{"product_id": "p1", "displayed_price": 123}]))
    .expect_error("invalid price for product p1"),
    Scenario("Multi: Order product with initial valid price")
    .given(ProductDefined(product_id="p1", price=123).at(ago(minutes=20)))
    .when(OrderMultipleProducts(items=[{"product_id": "p1", "displayed_price": 123}]))
    .expect_event(MultipleProductsOrdered(items=[{"product_id": "p1", "price": 123}])),
    Scenario("Multi: Order product with a price that was changed less than 10 minutes ago")
    .given(
        ProductDefined(product_id="p1", price=123).at(ago(minutes=20)),
        ProductPriceChanged(product_id="p1", new_price=134).at(ago(minutes=9)),
    )
    .when(OrderMultipleProducts(items=[{"product_id": "p1", "displayed_price": 123}]))
    .expect_event(MultipleProductsOrdered(items=[{"product_id": "p1", "price": 123}])),
    Scenario("Multi: Order product with valid new price")
    .given(
        ProductDefined(product_id="p1", price=123).at(ago(minutes=20)),
        ProductPriceChanged(product_id="p1", new_price=134).at(ago(minutes=9)),
        ProductDefined(product_id="p2", price=321).at(ago(minutes=8)),
    )
    .when(
        OrderMultipleProducts(
            items=[
                {"product_id": "p1", "displayed_price": 123},
                {"product_id": "p2", "displayed_price": 321},
            ]
        )
    )
    .expect_event(
        MultipleProductsOrdered(
            items=[{"product_id": "p1", "price": 123}, {"product_id": "p2", "price": 321}]
        )
    ),
]
