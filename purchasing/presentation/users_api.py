from typing import List
from fastapi import APIRouter, Depends, Response, status

from purchasing.config import settings
from purchasing.presentation.dependencies import get_current_caller, get_unit_of_work, get_password_hasher
from purchasing.presentation.schemas import (
    UserRequest, UserResponse, LoginRequest, LoginResponse, LoginUser, ErrorResponse
)
from purchasing.application.authenticate import LoginUseCase, LoginDTO
from purchasing.application.manage_users import UserDirectory
from purchasing.infrastructure.security import generate_token
from purchasing.domain.models import Caller

router = APIRouter(tags=["users"])

ERRORS = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def get_login_use_case(uow=Depends(get_unit_of_work), hasher=Depends(get_password_hasher)):
    return LoginUseCase(uow, hasher, generate_token, settings.TOKEN_TTL_MINUTES)


def get_user_directory(uow=Depends(get_unit_of_work), hasher=Depends(get_password_hasher)):
    return UserDirectory(uow, hasher)


@router.post("/login_check", response_model=LoginResponse, responses={401: {"model": ErrorResponse}})
async def login(
    request: LoginRequest,
    use_case: LoginUseCase = Depends(get_login_use_case)
):
    """Обмен email/пароля на bearer-токен"""
    result = await use_case(LoginDTO(email=request.email, password=request.password))
    return LoginResponse(
        token=result.token,
        user=LoginUser(id=result.user.id, email=result.user.email, roles=result.user.roles)
    )


@router.get("/authenticated", response_model=UserResponse, responses=ERRORS)
async def authenticated(
    caller: Caller = Depends(get_current_caller),
    directory: UserDirectory = Depends(get_user_directory)
):
    """Текущий пользователь"""
    return UserResponse.from_domain(await directory.get(caller.id, caller))


@router.get("/users", response_model=List[UserResponse], responses=ERRORS)
async def list_users(
    caller: Caller = Depends(get_current_caller),
    directory: UserDirectory = Depends(get_user_directory)
):
    return [UserResponse.from_domain(user) for user in await directory.list(caller)]


@router.get("/users/{user_id}", response_model=UserResponse, responses=ERRORS)
async def get_user(
    user_id: int,
    caller: Caller = Depends(get_current_caller),
    directory: UserDirectory = Depends(get_user_directory)
):
    return UserResponse.from_domain(await directory.get(user_id, caller))


@router.post(
    "/users",
    response_model=UserResponse,
    responses=ERRORS,
    status_code=status.HTTP_201_CREATED
)
async def create_user(
    request: UserRequest,
    caller: Caller = Depends(get_current_caller),
    directory: UserDirectory = Depends(get_user_directory)
):
    return UserResponse.from_domain(await directory.create(request.to_dto(), caller))


@router.put("/users/{user_id}", response_model=UserResponse, responses=ERRORS)
async def replace_user(
    user_id: int,
    request: UserRequest,
    caller: Caller = Depends(get_current_caller),
    directory: UserDirectory = Depends(get_user_directory)
):
    return UserResponse.from_domain(await directory.update(user_id, request.to_dto(), caller))


@router.patch("/users/{user_id}", response_model=UserResponse, responses=ERRORS)
async def update_user(
    user_id: int,
    request: UserRequest,
    caller: Caller = Depends(get_current_caller),
    directory: UserDirectory = Depends(get_user_directory)
):
    return UserResponse.from_domain(await directory.update(user_id, request.to_dto(), caller))


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, responses=ERRORS)
async def delete_user(
    user_id: int,
    caller: Caller = Depends(get_current_caller),
    directory: UserDirectory = Depends(get_user_directory)
):
    await directory.delete(user_id, caller)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
