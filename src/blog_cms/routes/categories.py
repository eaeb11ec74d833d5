"""
# Category Routes

| Method | Path                          | Access | Purpose                                  |
|--------|-------------------------------|--------|------------------------------------------|
| GET    | `/categories?withCounts=true` | public | Active categories, optionally with counts|
| GET    | `/categories/{identifier}`    | public | One category by id or slug               |
| POST   | `/categories`                 | admin  | Create                                   |
| PUT    | `/categories/{category_id}`   | admin  | Partial update                           |
| DELETE | `/categories/{category_id}`   | admin  | Delete (refused while posts use it)      |
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from blog_cms.managers.category_manager import category_manager
from blog_cms.managers.logging_manager import get_logger
from blog_cms.models.blog_models import ApiResponse, CategoryResponse, CreateCategoryRequest, UpdateCategoryRequest
from blog_cms.routes.dependencies import require_admin
from blog_cms.utils.errors import BlogError, UnexpectedError

logger = get_logger(prefix="[Category Routes]")

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=ApiResponse[List[CategoryResponse]])
async def list_categories(with_counts: bool = Query(False, alias="withCounts")):
    """
    List active categories ordered by `sortOrder`, then `name`.

    With `withCounts=true` each category carries `postCount`, the number of its
    published posts.
    """
    try:
        categories = await category_manager.list_categories(with_counts=with_counts)
        return ApiResponse(data=categories)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to list categories: %s", e, exc_info=True)
        raise UnexpectedError("Server error while fetching categories", detail=str(e)) from e


@router.get("/{identifier}", response_model=ApiResponse[CategoryResponse])
async def get_category(identifier: str):
    try:
        category = await category_manager.get_category(identifier)
        return ApiResponse(data=category)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to get category %s: %s", identifier, e, exc_info=True)
        raise UnexpectedError("Server error while fetching category", detail=str(e)) from e


@router.post("", response_model=ApiResponse[CategoryResponse], status_code=status.HTTP_201_CREATED)
async def create_category(request: CreateCategoryRequest, current_user: dict = Depends(require_admin)):
    try:
        category = await category_manager.create_category(request)
        return ApiResponse(message="Category created successfully", data=category)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to create category: %s", e, exc_info=True)
        raise UnexpectedError("Server error while creating category", detail=str(e)) from e


@router.put("/{category_id}", response_model=ApiResponse[CategoryResponse])
async def update_category(
    category_id: str, request: UpdateCategoryRequest, current_user: dict = Depends(require_admin)
):
    try:
        category = await category_manager.update_category(category_id, request)
        return ApiResponse(message="Category updated successfully", data=category)
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to update category %s: %s", category_id, e, exc_info=True)
        raise UnexpectedError("Server error while updating category", detail=str(e)) from e


@router.delete("/{category_id}", response_model=ApiResponse[None])
async def delete_category(category_id: str, current_user: dict = Depends(require_admin)):
    """
    Delete a category.

    Raises:
        DomainConstraintError(400): The category still has draft or published posts.
    """
    try:
        await category_manager.delete_category(category_id, current_user)
        return ApiResponse(message="Category deleted successfully")
    except BlogError:
        raise
    except Exception as e:
        logger.error("Failed to delete category %s: %s", category_id, e, exc_info=True)
        raise UnexpectedError("Server error while deleting category", detail=str(e)) from e
