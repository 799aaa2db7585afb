"""
Example domains built on the DCB engine.

DOMAINS maps a CLI-friendly name to (Api subclass, scenarios).
"""

from typing import Dict, List, Tuple, Type

from ..api import Api
from ..scenario import Scenario
from . import (
    course_subscription,
    dynamic_product_price,
    invoice_number,
    opt_in_token,
    prevent_record_duplication,
    unique_username,
)

DOMAINS: Dict[str, Tuple[Type[Api], List[Scenario]]] = {
    "course-subscription": (course_subscription.CourseSubscription, course_subscription.SCENARIOS),
    "unique-username": (unique_username.UniqueUsername, unique_username.SCENARIOS),
    "invoice-number": (invoice_number.InvoiceNumber, invoice_number.SCENARIOS),
    "prevent-record-duplication": (
        prevent_record_duplication.PreventRecordDuplication,
        prevent_record_duplication.SCENARIOS,
    ),
    "opt-in-token": (opt_in_token.OptInToken, opt_in_token.SCENARIOS),
    "dynamic-product-price": (
        dynamic_product_price.DynamicProductPrice,
        dynamic_product_price.SCENARIOS,
    ),
}
