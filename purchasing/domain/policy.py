from typing import Optional

from purchasing.domain.models import Caller, Order
from purchasing.domain.exceptions import ForbiddenError


class OrderAccessPolicy:
    """Кто и что может делать с заказами.

    Правила проверяются в порядке: список, чтение, создание, изменение,
    удаление. Нарушение любого правила даёт ForbiddenError, запись никогда
    не превращается молча в no-op.
    """

    def list_scope(self, caller: Caller) -> Optional[int]:
        """None: все заказы (администратор), иначе id владельца для фильтра"""
        if caller.is_admin:
            return None
        return caller.id

    def ensure_can_view(self, caller: Caller, order: Order) -> None:
        if caller.is_admin or order.is_owned_by(caller.id):
            return
        raise ForbiddenError("Вы можете просматривать только свои заказы")

    def ensure_can_create(self, caller: Optional[Caller]) -> None:
        if caller is None:
            raise ForbiddenError("Вы должны войти в систему, чтобы создать заказ")

    def ensure_can_update(self, caller: Caller, order: Order) -> None:
        if caller.is_admin:
            return
        if order.is_owned_by(caller.id) and order.is_pending():
            return
        raise ForbiddenError("Вы можете изменять только свои заказы в статусе pending")

    def ensure_can_delete(self, caller: Caller, order: Order) -> None:
        if not caller.is_admin:
            raise ForbiddenError("Только администраторы могут удалять заказы")

    def ensure_can_assign_customer(self, caller: Caller, customer_id: int) -> None:
        if customer_id != caller.id and not caller.is_admin:
            raise ForbiddenError("Только администратор может оформить заказ на другого пользователя")


def ensure_admin(caller: Caller, message: str = "Операция доступна только администраторам") -> None:
    if not caller.is_admin:
        raise ForbiddenError(message)
