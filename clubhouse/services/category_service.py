import uuid
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from clubhouse.db import models, schemas
from clubhouse.errors import ConflictError, NotFoundError
from clubhouse.services.base import BaseService


def _attributes_payload(attributes) -> List[Dict[str, Any]]:
    return [a.model_dump(exclude_none=True) for a in attributes or []]


class CategoryService(BaseService):
    logger_name = "clubhouse.inventory"

    def create(self, data: schemas.CategoryCreate) -> models.EquipmentCategory:
        self.logger.info("category_create: name=%s", data.name)
        with self.transaction() as trx:
            self._ensure_unique_name(trx, data.name)
            category = models.EquipmentCategory(
                name=data.name,
                description=data.description,
                available_attributes=_attributes_payload(data.available_attributes),
            )
            trx.add(category)
            trx.flush()
            return category

    def find_by_id(self, category_id: uuid.UUID) -> models.EquipmentCategory:
        with self.transaction() as trx:
            return self._find_by_id(trx, category_id)

    def find_many(self) -> List[models.EquipmentCategory]:
        with self.transaction() as trx:
            return trx.query(models.EquipmentCategory).order_by(models.EquipmentCategory.name.asc()).all()

    def update(self, category_id: uuid.UUID, data: schemas.CategoryUpdate) -> models.EquipmentCategory:
        self.logger.info("category_update: category_id=%s", category_id)
        with self.transaction() as trx:
            category = self._find_by_id(trx, category_id)
            if data.name is not None and data.name != category.name:
                self._ensure_unique_name(trx, data.name)
                category.name = data.name
            if "description" in data.model_fields_set:
                category.description = data.description
            if data.available_attributes is not None:
                category.available_attributes = _attributes_payload(data.available_attributes)
            trx.flush()
            return category

    def delete(self, category_id: uuid.UUID) -> None:
        self.logger.info("category_delete: category_id=%s", category_id)
        with self.transaction() as trx:
            category = self._find_by_id(trx, category_id)
            in_use = (
                trx.query(models.InventoryItem)
                .filter(models.InventoryItem.category_id == category_id)
                .count()
            )
            if in_use:
                raise ConflictError("Cannot delete a category that has items")
            trx.delete(category)

    def get_with_item_count(self) -> List[Dict[str, Any]]:
        with self.transaction() as trx:
            rows = (
                trx.query(models.EquipmentCategory, func.count(models.InventoryItem.id))
                .outerjoin(models.InventoryItem, models.InventoryItem.category_id == models.EquipmentCategory.id)
                .group_by(models.EquipmentCategory.id)
                .order_by(models.EquipmentCategory.name.asc())
                .all()
            )
            return [{"category": category, "item_count": count} for category, count in rows]

    def _find_by_id(self, trx: Session, category_id: uuid.UUID) -> models.EquipmentCategory:
        category = trx.get(models.EquipmentCategory, category_id)
        if category is None:
            raise NotFoundError("Category not found")
        return category

    def _ensure_unique_name(self, trx: Session, name: str) -> None:
        exists = trx.query(models.EquipmentCategory).filter(models.EquipmentCategory.name == name).first()
        if exists is not None:
            raise ConflictError("A category with this name already exists")
