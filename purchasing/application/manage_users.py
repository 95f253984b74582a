import logging
from typing import List, Optional
from pydantic import BaseModel, Field

from purchasing.domain.models import Caller, User, ROLE_USER
from purchasing.domain.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from purchasing.domain.factories import utcnow
from purchasing.domain.policy import ensure_admin
from purchasing.application.interfaces import PasswordHasher

logger = logging.getLogger(__name__)


class UserDTO(BaseModel):
    email: Optional[str] = Field(default=None, min_length=3, max_length=180)
    password: Optional[str] = Field(default=None, min_length=1)
    first_name: Optional[str] = Field(default=None, max_length=255)
    last_name: Optional[str] = Field(default=None, max_length=255)
    roles: Optional[list[str]] = None
    is_active: Optional[bool] = None


def normalize_roles(roles: Optional[list[str]]) -> list[str]:
    """ROLE_USER есть у каждого пользователя"""
    result = [ROLE_USER]
    for role in roles or []:
        if role not in result:
            result.append(role)
    return result


class UserDirectory:
    """Управление пользователями: администратор управляет всеми, пользователь читает только себя"""

    def __init__(self, unit_of_work, password_hasher: PasswordHasher):
        self._uow = unit_of_work
        self._hasher = password_hasher

    async def list(self, caller: Caller) -> List[User]:
        ensure_admin(caller, "Только администраторы могут просматривать пользователей")
        async with self._uow() as uow:
            return await uow.users.list()

    async def get(self, user_id: int, caller: Caller) -> User:
        if not caller.is_admin and caller.id != user_id:
            raise ForbiddenError("Вы можете просматривать только свой профиль")
        async with self._uow() as uow:
            user = await uow.users.get_by_id(user_id)
            if not user:
                raise NotFoundError(f"Пользователь {user_id} не найден")
            return user

    async def create(self, dto: UserDTO, caller: Caller) -> User:
        ensure_admin(caller, "Только администраторы могут создавать пользователей")
        missing = [name for name in ("email", "password", "first_name", "last_name") if getattr(dto, name) is None]
        if missing:
            raise ValidationError(f"Обязательные поля не заполнены: {', '.join(missing)}")

        async with self._uow() as uow:
            await self._ensure_unique_email(uow, dto.email)
            user = User(
                email=dto.email,
                roles=normalize_roles(dto.roles),
                first_name=dto.first_name,
                last_name=dto.last_name,
                password_hash=self._hasher.hash(dto.password),
                is_active=True if dto.is_active is None else dto.is_active,
                created_at=utcnow(),
            )
            user.id = await uow.users.create(user)
            await uow.commit()
        logger.info(f"Пользователь {user.id} ({user.email}) создан")
        return user

    async def update(self, user_id: int, dto: UserDTO, caller: Caller) -> User:
        ensure_admin(caller, "Только администраторы могут изменять пользователей")
        async with self._uow() as uow:
            user = await uow.users.get_by_id(user_id)
            if not user:
                raise NotFoundError(f"Пользователь {user_id} не найден")

            if dto.email is not None and dto.email != user.email:
                await self._ensure_unique_email(uow, dto.email)
                user.email = dto.email
            if dto.password:
                user.password_hash = self._hasher.hash(dto.password)
            if dto.first_name is not None:
                user.first_name = dto.first_name
            if dto.last_name is not None:
                user.last_name = dto.last_name
            if dto.roles is not None:
                user.roles = normalize_roles(dto.roles)
            if dto.is_active is not None:
                user.is_active = dto.is_active

            user.updated_at = utcnow()
            await uow.users.update(user)
            await uow.commit()
        logger.info(f"Пользователь {user_id} изменён")
        return user

    async def delete(self, user_id: int, caller: Caller) -> None:
        ensure_admin(caller, "Только администраторы могут удалять пользователей")
        if user_id == caller.id:
            raise ForbiddenError("Нельзя удалить собственную учётную запись")
        async with self._uow() as uow:
            if not await uow.users.get_by_id(user_id):
                raise NotFoundError(f"Пользователь {user_id} не найден")
            await uow.users.soft_delete(user_id, utcnow())
            await uow.commit()
        logger.info(f"Пользователь {user_id} удалён")

    async def _ensure_unique_email(self, uow, email: str) -> None:
        if await uow.users.get_by_email(email):
            raise ConflictError(f"Пользователь с email {email} уже существует")
