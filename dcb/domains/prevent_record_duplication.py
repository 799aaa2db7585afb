"""Idempotent order placement keyed by a client-supplied token."""

from typing import List

from pydantic import BaseModel, ConfigDict

from ..api import Api, handles
from ..core.errors import ValidationError
from ..core.events import EventType, EventTypeRegistry
from ..core.projection import Projection
from ..scenario import Scenario

OrderPlaced = EventType(
    "OrderPlaced",
    tags=lambda d: [f"order:{d['order_id']}", f"idempotency:{d['idempotency_token']}"],
)

EVENT_TYPES = EventTypeRegistry([OrderPlaced])


class PlaceOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str
    idempotency_token: str


def idempotency_token_was_used(token: str) -> Projection:
    return (
        Projection.for_tags(f"idempotency:{token}")
        .init(False)
        .when(OrderPlaced, lambda state, event: True)
    )


class PreventRecordDuplication(Api):
    event_types = EVENT_TYPES

    @handles(PlaceOrder)
    def place_order(self, command: PlaceOrder) -> List[int]:
        model, query, append_condition = self.build_decision_model(
            idempotency_token_was_used=idempotency_token_was_used(command.idempotency_token)
        )

        if model.idempotency_token_was_used:
            raise ValidationError("Re-submission")

        return self.store.append(
            OrderPlaced(order_id=command.order_id, idempotency_token=command.idempotency_token),
            query,
            append_condition,
        )


SCENARIOS = [
    Scenario("Place order with previously used idempotency token")
    .given(OrderPlaced(order_id="o12345", idempotency_token="11111"))
    .when(PlaceOrder(order_id="o54321", idempotency_token="11111"))
    .expect_error("Re-submission"),
    Scenario("Place order with new idempotency token")
    .given(OrderPlaced(order_id="o12345", idempotency_token="11111"))
    .when(PlaceOrder(order_id="o54321", idempotency_token="22222"))
    .expect_event(OrderPlaced(order_id="o54321", idempotency_token="22222")),
]
