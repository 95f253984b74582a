class DomainException(Exception):
    pass


class ValidationError(DomainException):
    pass


class NotFoundError(DomainException):
    pass


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Заказ {order_id} не найден")


class ForbiddenError(DomainException):
    pass


class ConflictError(DomainException):
    pass


class AuthenticationError(DomainException):
    pass


class EmptyOrderError(ValidationError):
    def __init__(self):
        super().__init__("Заказ должен содержать хотя бы один товар")
