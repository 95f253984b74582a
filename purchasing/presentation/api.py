from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status

from purchasing.presentation.dependencies import get_current_caller, get_unit_of_work
from purchasing.presentation.schemas import OrderRequest, OrderResponse, ErrorResponse
from purchasing.application.reconcile_order import ReconcileOrderUseCase
from purchasing.application.get_order import GetOrderUseCase, ListOrdersUseCase
from purchasing.application.delete_order import DeleteOrderUseCase
from purchasing.application.interfaces import OrderListQuery
from purchasing.domain.models import Caller, OrderStatus

router = APIRouter(tags=["orders"])

ERRORS = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


# Фабрики для создания use cases
def get_reconcile_order_use_case(uow=Depends(get_unit_of_work)):
    return ReconcileOrderUseCase(uow)


def get_get_order_use_case(uow=Depends(get_unit_of_work)):
    return GetOrderUseCase(uow)


def get_list_orders_use_case(uow=Depends(get_unit_of_work)):
    return ListOrdersUseCase(uow)


def get_delete_order_use_case(uow=Depends(get_unit_of_work)):
    return DeleteOrderUseCase(uow)


@router.get("/orders", response_model=List[OrderResponse], responses=ERRORS)
async def list_orders(
    order_number: Optional[str] = Query(default=None, alias="orderNumber"),
    order_status: Optional[OrderStatus] = Query(default=None, alias="status"),
    customer_email: Optional[str] = Query(default=None, alias="customerEmail"),
    order_date_after: Optional[date] = Query(default=None, alias="orderDateAfter"),
    order_date_before: Optional[date] = Query(default=None, alias="orderDateBefore"),
    ordering: Optional[str] = Query(default=None, alias="order"),
    caller: Caller = Depends(get_current_caller),
    use_case: ListOrdersUseCase = Depends(get_list_orders_use_case)
):
    """Список заказов: администратор видит все, пользователь видит свои"""
    query = OrderListQuery(
        order_number=order_number,
        status=order_status,
        customer_email=customer_email,
        order_date_after=order_date_after,
        order_date_before=order_date_before,
        ordering=ordering
    )
    orders = await use_case(query, caller)
    return [OrderResponse.from_domain(order) for order in orders]


@router.get("/orders/{order_id}", response_model=OrderResponse, responses=ERRORS)
async def get_order(
    order_id: int,
    caller: Caller = Depends(get_current_caller),
    use_case: GetOrderUseCase = Depends(get_get_order_use_case)
):
    """Получить заказ по ID"""
    order = await use_case(order_id, caller)
    return OrderResponse.from_domain(order)


@router.post(
    "/orders",
    response_model=OrderResponse,
    responses=ERRORS,
    status_code=status.HTTP_201_CREATED
)
async def create_order(
    request: OrderRequest,
    caller: Caller = Depends(get_current_caller),
    use_case: ReconcileOrderUseCase = Depends(get_reconcile_order_use_case)
):
    """Создать новый заказ"""
    result = await use_case(None, request.to_payload(), caller)
    return OrderResponse.from_domain(result.order, result.warnings)


@router.put("/orders/{order_id}", response_model=OrderResponse, responses=ERRORS)
async def replace_order(
    order_id: int,
    request: OrderRequest,
    caller: Caller = Depends(get_current_caller),
    use_case: ReconcileOrderUseCase = Depends(get_reconcile_order_use_case)
):
    """Полная замена содержимого заказа"""
    result = await use_case(order_id, request.to_payload(), caller)
    return OrderResponse.from_domain(result.order, result.warnings)


@router.patch("/orders/{order_id}", response_model=OrderResponse, responses=ERRORS)
async def update_order(
    order_id: int,
    request: OrderRequest,
    caller: Caller = Depends(get_current_caller),
    use_case: ReconcileOrderUseCase = Depends(get_reconcile_order_use_case)
):
    """Изменить статус/комментарий; строки заменяются, только если переданы"""
    result = await use_case(order_id, request.to_payload(), caller)
    return OrderResponse.from_domain(result.order, result.warnings)


@router.delete(
    "/orders/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERRORS
)
async def delete_order(
    order_id: int,
    caller: Caller = Depends(get_current_caller),
    use_case: DeleteOrderUseCase = Depends(get_delete_order_use_case)
):
    """Удалить заказ (только администратор)"""
    await use_case(order_id, caller)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
