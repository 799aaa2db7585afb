"""
Gapless, monotonic invoice numbers.

Two strategies:
  - CreateInvoice folds every InvoiceCreated into a counter.
  - CreateInvoiceFromLastEvent reads only the last InvoiceCreated and uses
    its id as the append condition.
Both reject a concurrent writer with ConcurrencyConflict.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict

from ..api import Api, handles
from ..core.events import EventType, EventTypeRegistry
from ..core.projection import Projection
from ..core.query import Query
from ..scenario import Scenario

InvoiceCreated = EventType("InvoiceCreated", tags=lambda d: f"invoice:{d['invoice_number']}")

EVENT_TYPES = EventTypeRegistry([InvoiceCreated])


class CreateInvoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    invoice_data: Dict[str, Any]


class CreateInvoiceFromLastEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    invoice_data: Dict[str, Any]


def next_invoice_number() -> Projection:
    return (
        Projection.for_all()
        .init(1)
        .when(InvoiceCreated, lambda state, event: state + 1)
    )


class InvoiceNumber(Api):
    event_types = EVENT_TYPES

    @handles(CreateInvoice)
    def create_invoice(self, command: CreateInvoice) -> List[int]:
        model, query, append_condition = self.build_decision_model(
            next_invoice_number=next_invoice_number()
        )
        return self.store.append(
            InvoiceCreated(
                invoice_number=model.next_invoice_number,
                invoice_data=command.invoice_data,
            ),
            query,
            append_condition,
        )

    @handles(CreateInvoiceFromLastEvent)
    def create_invoice_from_last_event(self, command: CreateInvoiceFromLastEvent) -> List[int]:
        query = Query.of(types=InvoiceCreated.name)
        last = self.store.read(query).last()
        if last is None:
            number, append_condition = 1, None
        else:
            number, append_condition = last.data["invoice_number"] + 1, last.id

        return self.store.append(
            InvoiceCreated(invoice_number=number, invoice_data=command.invoice_data),
            query,
            append_condition,
        )


SCENARIOS = [
    Scenario("Create first invoice")
    .when(CreateInvoice(invoice_data={"foo": "bar"}))
    .expect_event(InvoiceCreated(invoice_number=1, invoice_data={"foo": "bar"})),
    Scenario("Create second invoice")
    .given(InvoiceCreated(invoice_number=1, invoice_data={"foo": "bar"}))
    .when(CreateInvoice(invoice_data={"bar": "baz"}))
    .expect_event(InvoiceCreated(invoice_number=2, invoice_data={"bar": "baz"})),
    Scenario("Create first invoice from last event")
    .when(CreateInvoiceFromLastEvent(invoice_data={"foo": "bar"}))
    .expect_event(InvoiceCreated(invoice_number=1, invoice_data={"foo": "bar"})),
    Scenario("Create second invoice from last event")
    .given(InvoiceCreated(invoice_number=1, invoice_data={"foo": "bar"}))
    .when(CreateInvoiceFromLastEvent(invoice_data={"bar": "baz"}))
    .expect_event(InvoiceCreated(invoice_number=2, invoice_data={"bar": "baz"})),
]
