"""
Inventory API endpoints: equipment categories, containers, items and history.

Members may browse; quartermasters manage. The whole router is hidden when
the inventory feature flag is off.
"""
from typing import Optional
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clubhouse.api.deps import claims_of, require_inventory_feature, require_roles
from clubhouse.api.responses import success
from clubhouse.db import schemas
from clubhouse.db.database import get_db
from clubhouse.services import CategoryService, ContainerService, HistoryService, ItemService
from clubhouse.utils.role_permissions import INVENTORY_READ_ROLES, INVENTORY_ROLES

router = APIRouter(
    prefix="/api/inventory",
    tags=["inventory"],
    dependencies=[Depends(require_inventory_feature)],
)

reader = require_roles(INVENTORY_READ_ROLES)
manager = require_roles(INVENTORY_ROLES)


def _category(row):
    return schemas.Category.model_validate(row)


def _container(row):
    return schemas.Container.model_validate(row)


def _item(row):
    return schemas.Item.model_validate(row)


def _history(entry):
    return {
        **schemas.HistoryEntry.model_validate(entry["entry"]).model_dump(),
        "old_container_name": entry["old_container_name"],
        "new_container_name": entry["new_container_name"],
    }


# Categories

@router.get("/categories")
def list_categories(
    with_counts: bool = False,
    db: Session = Depends(get_db),
    user_context=Depends(reader),
):
    service = CategoryService(db, claims_of(user_context))
    if with_counts:
        return success([
            {**_category(e["category"]).model_dump(), "item_count": e["item_count"]}
            for e in service.get_with_item_count()
        ])
    return success([_category(c) for c in service.find_many()])


@router.post("/categories", status_code=201)
def create_category(
    payload: schemas.CategoryCreate,
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    return success(_category(CategoryService(db, claims_of(user_context)).create(payload)), message="Category created")


@router.get("/categories/{category_id}")
def get_category(
    category_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(reader),
):
    return success(_category(CategoryService(db, claims_of(user_context)).find_by_id(category_id)))


@router.put("/categories/{category_id}")
def update_category(
    category_id: uuid.UUID,
    payload: schemas.CategoryUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    category = CategoryService(db, claims_of(user_context)).update(category_id, payload)
    return success(_category(category), message="Category updated")


@router.delete("/categories/{category_id}")
def delete_category(
    category_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    CategoryService(db, claims_of(user_context)).delete(category_id)
    return success({"id": category_id}, message="Category deleted")


# Containers

@router.get("/containers")
def list_containers(
    with_counts: bool = False,
    db: Session = Depends(get_db),
    user_context=Depends(reader),
):
    service = ContainerService(db, claims_of(user_context))
    if with_counts:
        return success([
            {**_container(e["container"]).model_dump(), "item_count": e["item_count"]}
            for e in service.get_with_item_count()
        ])
    return success([_container(c) for c in service.find_many()])


@router.get("/containers/available-parents")
def available_parents(
    exclude_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    containers = ContainerService(db, claims_of(user_context)).get_available_parents(exclude_id)
    return success([_container(c) for c in containers])


@router.post("/containers", status_code=201)
def create_container(
    payload: schemas.ContainerCreate,
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    container = ContainerService(db, claims_of(user_context)).create(payload)
    return success(_container(container), message="Container created")


@router.get("/containers/{container_id}")
def get_container(
    container_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(reader),
):
    related = ContainerService(db, claims_of(user_context)).get_with_relations(container_id)
    return success({
        **_container(related["container"]).model_dump(),
        "parent": _container(related["parent"]) if related["parent"] else None,
        "children": [_container(c) for c in related["children"]],
        "items": [_item(i) for i in related["items"]],
    })


@router.put("/containers/{container_id}")
def update_container(
    container_id: uuid.UUID,
    payload: schemas.ContainerUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    container = ContainerService(db, claims_of(user_context)).update(container_id, payload)
    return success(_container(container), message="Container updated")


@router.delete("/containers/{container_id}")
def delete_container(
    container_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    ContainerService(db, claims_of(user_context)).delete(container_id)
    return success({"id": container_id}, message="Container deleted")


# Items

@router.get("/items")
def list_items(
    search: Optional[str] = None,
    category_id: Optional[uuid.UUID] = None,
    container_id: Optional[uuid.UUID] = None,
    out_for_maintenance: Optional[bool] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_db),
    user_context=Depends(reader),
):
    filters = schemas.ItemSearch(
        search=search,
        category_id=category_id,
        container_id=container_id,
        out_for_maintenance=out_for_maintenance,
        page=page,
        limit=limit,
    )
    result = ItemService(db, claims_of(user_context)).find_many(filters)
    return success({**result, "items": [_item(i) for i in result["items"]]})


@router.get("/items/filter-options")
def item_filter_options(
    db: Session = Depends(get_db),
    user_context=Depends(reader),
):
    return success(ItemService(db, claims_of(user_context)).get_filter_options())


@router.get("/history")
def recent_history(
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    return success([_history(e) for e in HistoryService(db, claims_of(user_context)).get_recent(limit)])


@router.post("/items", status_code=201)
def create_item(
    payload: schemas.ItemCreate,
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    return success(_item(ItemService(db, claims_of(user_context)).create(payload)), message="Item created")


@router.get("/items/{item_id}")
def get_item(
    item_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(reader),
):
    return success(_item(ItemService(db, claims_of(user_context)).find_by_id(item_id)))


@router.put("/items/{item_id}")
def update_item(
    item_id: uuid.UUID,
    payload: schemas.ItemUpdate,
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    return success(_item(ItemService(db, claims_of(user_context)).update(item_id, payload)), message="Item updated")


@router.delete("/items/{item_id}")
def delete_item(
    item_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    ItemService(db, claims_of(user_context)).delete(item_id)
    return success({"id": item_id}, message="Item deleted")


@router.post("/items/{item_id}/move")
def move_item(
    item_id: uuid.UUID,
    payload: schemas.ItemMove,
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    item = ItemService(db, claims_of(user_context)).move_to_container(item_id, payload.container_id, payload.notes)
    return success(_item(item), message="Item moved")


@router.post("/items/{item_id}/maintenance")
def set_maintenance(
    item_id: uuid.UUID,
    payload: schemas.ItemMaintenance,
    db: Session = Depends(get_db),
    user_context=Depends(manager),
):
    service = ItemService(db, claims_of(user_context))
    item = service.mark_maintenance(item_id, payload.out_for_maintenance, payload.notes)
    return success(_item(item))


@router.get("/items/{item_id}/history")
def item_history(
    item_id: uuid.UUID,
    limit: int = Query(default=20, ge=1, le=200),
    db: Session = Depends(get_db),
    user_context=Depends(reader),
):
    return success([_history(e) for e in HistoryService(db, claims_of(user_context)).get_by_item(item_id, limit)])
