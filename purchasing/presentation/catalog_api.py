from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status

from purchasing.presentation.dependencies import get_current_caller, get_unit_of_work
from purchasing.presentation.schemas import (
    CategoryRequest, CategoryResponse, ProductRequest, ProductResponse, ErrorResponse
)
from purchasing.application.manage_catalog import CategoryCatalog, ProductCatalog
from purchasing.domain.models import Caller

router = APIRouter(tags=["catalog"])

ERRORS = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


def get_category_catalog(uow=Depends(get_unit_of_work)):
    return CategoryCatalog(uow)


def get_product_catalog(uow=Depends(get_unit_of_work)):
    return ProductCatalog(uow)


# Категории

@router.get("/categories", response_model=List[CategoryResponse], responses=ERRORS)
async def list_categories(
    caller: Caller = Depends(get_current_caller),
    catalog: CategoryCatalog = Depends(get_category_catalog)
):
    return [CategoryResponse.from_domain(category) for category in await catalog.list()]


@router.get("/categories/{category_id}", response_model=CategoryResponse, responses=ERRORS)
async def get_category(
    category_id: int,
    caller: Caller = Depends(get_current_caller),
    catalog: CategoryCatalog = Depends(get_category_catalog)
):
    return CategoryResponse.from_domain(await catalog.get(category_id))


@router.post(
    "/categories",
    response_model=CategoryResponse,
    responses=ERRORS,
    status_code=status.HTTP_201_CREATED
)
async def create_category(
    request: CategoryRequest,
    caller: Caller = Depends(get_current_caller),
    catalog: CategoryCatalog = Depends(get_category_catalog)
):
    return CategoryResponse.from_domain(await catalog.create(request.to_dto(), caller))


@router.put("/categories/{category_id}", response_model=CategoryResponse, responses=ERRORS)
async def replace_category(
    category_id: int,
    request: CategoryRequest,
    caller: Caller = Depends(get_current_caller),
    catalog: CategoryCatalog = Depends(get_category_catalog)
):
    return CategoryResponse.from_domain(await catalog.update(category_id, request.to_dto(), caller))


@router.patch("/categories/{category_id}", response_model=CategoryResponse, responses=ERRORS)
async def update_category(
    category_id: int,
    request: CategoryRequest,
    caller: Caller = Depends(get_current_caller),
    catalog: CategoryCatalog = Depends(get_category_catalog)
):
    category = await catalog.update(category_id, request.to_dto(), caller, partial=True)
    return CategoryResponse.from_domain(category)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT, responses=ERRORS)
async def delete_category(
    category_id: int,
    caller: Caller = Depends(get_current_caller),
    catalog: CategoryCatalog = Depends(get_category_catalog)
):
    await catalog.delete(category_id, caller)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Товары

@router.get("/products", response_model=List[ProductResponse], responses=ERRORS)
async def list_products(
    category_id: Optional[int] = Query(default=None, alias="category"),
    caller: Caller = Depends(get_current_caller),
    catalog: ProductCatalog = Depends(get_product_catalog)
):
    return [ProductResponse.from_domain(product) for product in await catalog.list(category_id)]


@router.get("/products/{product_id}", response_model=ProductResponse, responses=ERRORS)
async def get_product(
    product_id: int,
    caller: Caller = Depends(get_current_caller),
    catalog: ProductCatalog = Depends(get_product_catalog)
):
    return ProductResponse.from_domain(await catalog.get(product_id))


@router.post(
    "/products",
    response_model=ProductResponse,
    responses=ERRORS,
    status_code=status.HTTP_201_CREATED
)
async def create_product(
    request: ProductRequest,
    caller: Caller = Depends(get_current_caller),
    catalog: ProductCatalog = Depends(get_product_catalog)
):
    return ProductResponse.from_domain(await catalog.create(request.to_dto(), caller))


@router.put("/products/{product_id}", response_model=ProductResponse, responses=ERRORS)
async def replace_product(
    product_id: int,
    request: ProductRequest,
    caller: Caller = Depends(get_current_caller),
    catalog: ProductCatalog = Depends(get_product_catalog)
):
    return ProductResponse.from_domain(await catalog.update(product_id, request.to_dto(), caller))


@router.patch("/products/{product_id}", response_model=ProductResponse, responses=ERRORS)
async def update_product(
    product_id: int,
    request: ProductRequest,
    caller: Caller = Depends(get_current_caller),
    catalog: ProductCatalog = Depends(get_product_catalog)
):
    product = await catalog.update(product_id, request.to_dto(), caller, partial=True)
    return ProductResponse.from_domain(product)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT, responses=ERRORS)
async def delete_product(
    product_id: int,
    caller: Caller = Depends(get_current_caller),
    catalog: ProductCatalog = Depends(get_product_catalog)
):
    await catalog.delete(product_id, caller)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
