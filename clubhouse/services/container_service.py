"""
Storage containers form a tree through ``parent_container_id``.

Descendant lookups walk the tree breadth-first in Python; container counts
are small and this keeps the queries portable between PostgreSQL and SQLite.
"""
import uuid
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from clubhouse.db import models, schemas
from clubhouse.errors import ConflictError, NotFoundError, ValidationFailed
from clubhouse.services.base import BaseService


class ContainerService(BaseService):
    logger_name = "clubhouse.inventory"

    def create(self, data: schemas.ContainerCreate) -> models.Container:
        self.logger.info("container_create: name=%s parent=%s", data.name, data.parent_container_id)
        with self.transaction() as trx:
            if data.parent_container_id is not None and trx.get(models.Container, data.parent_container_id) is None:
                raise ValidationFailed("Invalid parent container")
            container = models.Container(
                name=data.name,
                description=data.description,
                parent_container_id=data.parent_container_id,
                created_by=self.user_id,
            )
            trx.add(container)
            trx.flush()
            return container

    def find_by_id(self, container_id: uuid.UUID) -> models.Container:
        with self.transaction() as trx:
            return self._find_by_id(trx, container_id)

    def find_many(self) -> List[models.Container]:
        with self.transaction() as trx:
            return trx.query(models.Container).order_by(models.Container.name.asc()).all()

    def update(self, container_id: uuid.UUID, data: schemas.ContainerUpdate) -> models.Container:
        self.logger.info("container_update: container_id=%s", container_id)
        with self.transaction() as trx:
            container = self._find_by_id(trx, container_id)
            if "parent_container_id" in data.model_fields_set:
                parent_id = data.parent_container_id
                if parent_id is not None:
                    invalid = {container_id} | self._descendant_ids(trx, container_id)
                    if parent_id in invalid or trx.get(models.Container, parent_id) is None:
                        raise ValidationFailed("Invalid parent container")
                container.parent_container_id = parent_id
            if data.name is not None:
                container.name = data.name
            if "description" in data.model_fields_set:
                container.description = data.description
            trx.flush()
            return container

    def delete(self, container_id: uuid.UUID) -> None:
        self.logger.info("container_delete: container_id=%s", container_id)
        with self.transaction() as trx:
            container = self._find_by_id(trx, container_id)
            items = (
                trx.query(models.InventoryItem)
                .filter(models.InventoryItem.container_id == container_id)
                .count()
            )
            if items:
                raise ConflictError("Cannot delete a container that contains items")
            for child in trx.query(models.Container).filter(models.Container.parent_container_id == container_id):
                child.parent_container_id = container.parent_container_id
            trx.flush()
            trx.delete(container)

    def get_available_parents(self, exclude_id: Optional[uuid.UUID] = None) -> List[models.Container]:
        with self.transaction() as trx:
            containers = trx.query(models.Container).order_by(models.Container.name.asc()).all()
            if exclude_id is None:
                return containers
            excluded = {exclude_id} | self._descendant_ids(trx, exclude_id)
            return [c for c in containers if c.id not in excluded]

    def get_with_item_count(self) -> List[Dict[str, Any]]:
        with self.transaction() as trx:
            rows = (
                trx.query(models.Container, func.count(models.InventoryItem.id))
                .outerjoin(models.InventoryItem, models.InventoryItem.container_id == models.Container.id)
                .group_by(models.Container.id)
                .order_by(models.Container.name.asc())
                .all()
            )
            return [{"container": container, "item_count": count} for container, count in rows]

    def get_with_relations(self, container_id: uuid.UUID) -> Dict[str, Any]:
        with self.transaction() as trx:
            container = self._find_by_id(trx, container_id)
            parent = trx.get(models.Container, container.parent_container_id) if container.parent_container_id else None
            children = (
                trx.query(models.Container)
                .filter(models.Container.parent_container_id == container_id)
                .order_by(models.Container.name.asc())
                .all()
            )
            items = (
                trx.query(models.InventoryItem)
                .filter(models.InventoryItem.container_id == container_id)
                .order_by(models.InventoryItem.created_at.desc())
                .all()
            )
            return {"container": container, "parent": parent, "children": children, "items": items}

    def _find_by_id(self, trx: Session, container_id: uuid.UUID) -> models.Container:
        container = trx.get(models.Container, container_id)
        if container is None:
            raise NotFoundError("Container not found")
        return container

    def _descendant_ids(self, trx: Session, container_id: uuid.UUID) -> Set[uuid.UUID]:
        found: Set[uuid.UUID] = set()
        frontier = [container_id]
        while frontier:
            children = [
                row.id
                for row in trx.query(models.Container.id).filter(models.Container.parent_container_id.in_(frontier))
            ]
            frontier = [c for c in children if c not in found]
            found.update(frontier)
        return found
