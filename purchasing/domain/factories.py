import random
import time
from datetime import datetime, timezone
from typing import Optional

from purchasing.domain.models import Order, OrderLine, OrderStatus, Product, to_money


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_order_number(now: Optional[float] = None) -> str:
    """ORD-<4 цифры случайного числа>-<unix timestamp>"""
    timestamp = int(now if now is not None else time.time())
    return f"ORD-{random.randint(1, 9999):04d}-{timestamp}"


def new_order(customer_id: int) -> Order:
    """Новый пустой заказ в статусе pending, ещё без номера и id"""
    return Order(
        customer_id=customer_id,
        order_date=utcnow().date(),
        status=OrderStatus.PENDING,
        total_amount=to_money(0),
        is_active=True,
    )


def new_order_line(product: Product, quantity: int) -> OrderLine:
    """Строка заказа со снимком текущей цены товара"""
    unit_price = to_money(product.price)
    return OrderLine(
        product_id=product.id,
        quantity=quantity,
        unit_price=unit_price,
        total_price=to_money(unit_price * quantity),
    )


def stamp_created(order: Order) -> Order:
    now = utcnow()
    order.order_number = generate_order_number(now.timestamp())
    order.created_at = now
    order.order_date = now.date()
    return order


def stamp_updated(order: Order) -> Order:
    order.updated_at = utcnow()
    return order
