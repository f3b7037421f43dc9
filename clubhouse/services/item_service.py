"""
Inventory items and their movement history.

Every mutation records an ``inventory_history`` row in the same transaction.
"""
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from clubhouse.db import models, schemas
from clubhouse.errors import NotFoundError, ValidationFailed
from clubhouse.services.base import BaseService

MAX_PAGE_SIZE = 100


def _check_required_attributes(category: models.EquipmentCategory, attributes: Dict[str, Any]) -> None:
    for definition in category.available_attributes or []:
        if not definition.get("required"):
            continue
        key = definition.get("name") or definition.get("label")
        value = (attributes or {}).get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationFailed(f"Missing required attribute: {definition.get('label') or key}")


class ItemService(BaseService):
    logger_name = "clubhouse.inventory"

    def create(self, data: schemas.ItemCreate) -> models.InventoryItem:
        self.logger.info("item_create: category_id=%s container_id=%s", data.category_id, data.container_id)
        with self.transaction() as trx:
            category = self._category(trx, data.category_id)
            self._container(trx, data.container_id)
            _check_required_attributes(category, data.attributes)
            item = models.InventoryItem(**data.model_dump(), created_by=self.user_id, updated_by=self.user_id)
            trx.add(item)
            trx.flush()
            self._record(trx, item, "created", new_container_id=item.container_id)
            return item

    def find_by_id(self, item_id: uuid.UUID) -> models.InventoryItem:
        with self.transaction() as trx:
            return self._find_by_id(trx, item_id)

    def find_many(self, filters: Optional[schemas.ItemSearch] = None) -> Dict[str, Any]:
        filters = filters or schemas.ItemSearch()
        limit = min(filters.limit, MAX_PAGE_SIZE)
        self.logger.info("item_find_many: page=%s limit=%s search=%s", filters.page, limit, filters.search)
        with self.transaction() as trx:
            query = (
                trx.query(models.InventoryItem)
                .join(models.EquipmentCategory, models.InventoryItem.category_id == models.EquipmentCategory.id)
                .join(models.Container, models.InventoryItem.container_id == models.Container.id)
            )
            if filters.category_id:
                query = query.filter(models.InventoryItem.category_id == filters.category_id)
            if filters.container_id:
                query = query.filter(models.InventoryItem.container_id == filters.container_id)
            if filters.out_for_maintenance is not None:
                query = query.filter(models.InventoryItem.out_for_maintenance == filters.out_for_maintenance)
            if filters.search and filters.search.strip():
                pattern = f"%{filters.search.strip()}%"
                query = query.filter(
                    or_(
                        models.InventoryItem.notes.ilike(pattern),
                        models.EquipmentCategory.name.ilike(pattern),
                        models.Container.name.ilike(pattern),
                    )
                )
            total = query.count()
            items = (
                query.order_by(models.InventoryItem.created_at.desc())
                .offset((filters.page - 1) * limit)
                .limit(limit)
                .all()
            )
            return {"items": items, "total": total, "page": filters.page, "limit": limit}

    def update(self, item_id: uuid.UUID, data: schemas.ItemUpdate) -> models.InventoryItem:
        self.logger.info("item_update: item_id=%s", item_id)
        with self.transaction() as trx:
            item = self._find_by_id(trx, item_id)
            changes = data.model_dump(exclude_unset=True)
            old_container = item.container_id
            if changes.get("category_id") is not None:
                self._category(trx, changes["category_id"])
            if changes.get("container_id") is not None:
                self._container(trx, changes["container_id"])
            for key, value in changes.items():
                if value is None and key in ("container_id", "category_id", "attributes", "quantity", "out_for_maintenance"):
                    continue
                setattr(item, key, value)
            trx.flush()
            category = self._category(trx, item.category_id)
            _check_required_attributes(category, item.attributes)
            item.updated_by = self.user_id
            trx.flush()
            self._record(
                trx,
                item,
                "updated",
                old_container_id=old_container,
                new_container_id=item.container_id,
                notes=", ".join(sorted(changes)) or None,
            )
            trx.refresh(item)
            return item

    def delete(self, item_id: uuid.UUID) -> None:
        self.logger.info("item_delete: item_id=%s", item_id)
        with self.transaction() as trx:
            item = self._find_by_id(trx, item_id)
            trx.query(models.InventoryHistory).filter(models.InventoryHistory.item_id == item_id).delete()
            trx.delete(item)

    def move_to_container(self, item_id: uuid.UUID, container_id: uuid.UUID, notes: Optional[str] = None):
        self.logger.info("item_move: item_id=%s container_id=%s", item_id, container_id)
        with self.transaction() as trx:
            item = self._find_by_id(trx, item_id)
            self._container(trx, container_id)
            old_container = item.container_id
            item.container_id = container_id
            item.updated_by = self.user_id
            trx.flush()
            self._record(trx, item, "moved", old_container_id=old_container, new_container_id=container_id, notes=notes)
            trx.refresh(item)
            return item

    def mark_maintenance(self, item_id: uuid.UUID, out_for_maintenance: bool, notes: Optional[str] = None):
        self.logger.info("item_maintenance: item_id=%s out=%s", item_id, out_for_maintenance)
        with self.transaction() as trx:
            item = self._find_by_id(trx, item_id)
            item.out_for_maintenance = out_for_maintenance
            item.updated_by = self.user_id
            trx.flush()
            action = "maintenance_out" if out_for_maintenance else "maintenance_in"
            self._record(trx, item, action, notes=notes)
            return item

    def get_by_container(self, container_id: uuid.UUID) -> List[models.InventoryItem]:
        with self.transaction() as trx:
            return (
                trx.query(models.InventoryItem)
                .filter(models.InventoryItem.container_id == container_id)
                .order_by(models.InventoryItem.created_at.desc())
                .all()
            )

    def get_by_category(self, category_id: uuid.UUID) -> List[models.InventoryItem]:
        with self.transaction() as trx:
            return (
                trx.query(models.InventoryItem)
                .filter(models.InventoryItem.category_id == category_id)
                .order_by(models.InventoryItem.created_at.desc())
                .all()
            )

    def get_filter_options(self) -> Dict[str, Any]:
        with self.transaction() as trx:
            categories = trx.query(models.EquipmentCategory).order_by(models.EquipmentCategory.name.asc()).all()
            containers = trx.query(models.Container).order_by(models.Container.name.asc()).all()
            return {
                "categories": [{"id": c.id, "name": c.name} for c in categories],
                "containers": [{"id": c.id, "name": c.name} for c in containers],
            }

    def _find_by_id(self, trx: Session, item_id: uuid.UUID) -> models.InventoryItem:
        item = trx.get(models.InventoryItem, item_id)
        if item is None:
            raise NotFoundError("Inventory item not found")
        return item

    def _category(self, trx: Session, category_id: uuid.UUID) -> models.EquipmentCategory:
        category = trx.get(models.EquipmentCategory, category_id)
        if category is None:
            raise NotFoundError("Category not found")
        return category

    def _container(self, trx: Session, container_id: uuid.UUID) -> models.Container:
        container = trx.get(models.Container, container_id)
        if container is None:
            raise NotFoundError("Container not found")
        return container

    def _record(self, trx: Session, item, action: str, old_container_id=None, new_container_id=None, notes=None):
        trx.add(
            models.InventoryHistory(
                item_id=item.id,
                action=action,
                old_container_id=old_container_id,
                new_container_id=new_container_id,
                notes=notes,
                changed_by=self.user_id,
            )
        )
        trx.flush()
