import logging
from datetime import timedelta
from typing import Callable
from pydantic import BaseModel

from purchasing.domain.models import Caller, User
from purchasing.domain.exceptions import AuthenticationError
from purchasing.domain.factories import utcnow
from purchasing.application.interfaces import PasswordHasher

logger = logging.getLogger(__name__)


class LoginDTO(BaseModel):
    email: str
    password: str


class LoginResult(BaseModel):
    token: str
    user: User


class LoginUseCase:
    def __init__(
        self,
        unit_of_work,
        password_hasher: PasswordHasher,
        token_factory: Callable[[], str],
        token_ttl_minutes: int
    ):
        self._uow = unit_of_work
        self._hasher = password_hasher
        self._token_factory = token_factory
        self._ttl = timedelta(minutes=token_ttl_minutes)

    async def __call__(self, dto: LoginDTO) -> LoginResult:
        async with self._uow() as uow:
            user = await uow.users.get_by_email(dto.email)
            if not user or not user.is_active or not self._hasher.verify(dto.password, user.password_hash):
                logger.warning(f"Неудачная попытка входа: {dto.email}")
                raise AuthenticationError("Неверный email или пароль")

            token = self._token_factory()
            await uow.tokens.create(token, user.id, utcnow() + self._ttl)
            await uow.commit()

        logger.info(f"Пользователь {user.id} вошёл в систему")
        return LoginResult(token=token, user=user)


class AuthenticateUseCase:
    """Bearer-токен -> Caller"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, token: str) -> Caller:
        async with self._uow() as uow:
            user_id = await uow.tokens.get_user_id(token, utcnow())
            if user_id is None:
                raise AuthenticationError("Токен недействителен или истёк")
            user = await uow.users.get_by_id(user_id)
            if not user or not user.is_active:
                raise AuthenticationError("Учётная запись отключена")
            return Caller.from_user(user)
