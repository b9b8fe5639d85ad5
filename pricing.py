import logging
import random
import time
from typing import List

from database import Store
from schemas import Order

logger = logging.getLogger(__name__)

ORDER_ID_PREFIX = "ORD"


def generate_order_id() -> str:
    """ORD-<epoch millis>-<0..999>. Not guaranteed unique, the index is."""
    return f"{ORDER_ID_PREFIX}-{int(time.time() * 1000)}-{random.randrange(1000)}"


def final_unit_price(price: float, discount: float) -> float:
    return price - (price * discount / 100)


def resolve_order_pricing(store: Store, order: Order) -> List[str]:
    """Fill in item prices, the order total and the order id before saving.

    Prices are only computed when the caller left ``total_price`` unset or
    zero. Each item gets the product's current discounted price as a
    snapshot. Items whose product cannot be found are skipped and do not
    count towards the total; their product ids are returned so the caller
    can report them.
    """
    missing: List[str] = []
    if not order.total_price:
        total = 0.0
        for item in order.items:
            product = store.find_by_id("product", item.product_id)
            if product is None:
                missing.append(item.product_id)
                continue
            item.price = final_unit_price(float(product.get("price", 0)), float(product.get("discount", 0)))
            total += item.price * item.quantity
        order.total_price = total
        if missing:
            logger.warning("Order priced without unknown products: %s", ", ".join(missing))

    if not order.order_id:
        order.order_id = generate_order_id()
    return missing
