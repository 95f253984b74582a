from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from purchasing.database import get_session_factory
from purchasing.domain.models import Caller
from purchasing.domain.exceptions import AuthenticationError
from purchasing.application.authenticate import AuthenticateUseCase
from purchasing.infrastructure.unit_of_work import UnitOfWork
from purchasing.infrastructure.security import BcryptPasswordHasher

bearer_scheme = HTTPBearer(auto_error=False)


def get_unit_of_work():
    return UnitOfWork(get_session_factory())


def get_password_hasher():
    return BcryptPasswordHasher()


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    uow=Depends(get_unit_of_work)
) -> Caller:
    """Аутентифицированный пользователь из заголовка Authorization: Bearer <token>"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Требуется аутентификация")
    return await AuthenticateUseCase(uow)(credentials.credentials)
