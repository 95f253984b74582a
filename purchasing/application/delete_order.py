import logging
from typing import Optional

from purchasing.domain.models import Caller
from purchasing.domain.exceptions import OrderNotFoundError
from purchasing.domain.factories import utcnow
from purchasing.domain.policy import OrderAccessPolicy

logger = logging.getLogger(__name__)


class DeleteOrderUseCase:
    def __init__(self, unit_of_work, policy: Optional[OrderAccessPolicy] = None):
        self._uow = unit_of_work
        self._policy = policy or OrderAccessPolicy()

    async def __call__(self, order_id: int, caller: Caller) -> None:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(order_id)
            self._policy.ensure_can_delete(caller, order)
            await uow.orders.soft_delete(order_id, utcnow())
            await uow.commit()
        logger.info(f"Заказ {order_id} удалён пользователем {caller.id}")
