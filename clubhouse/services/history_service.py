import uuid
from typing import Any, Dict, List

from clubhouse.db import models
from clubhouse.services.base import BaseService


def _entry(row: models.InventoryHistory) -> Dict[str, Any]:
    return {
        "entry": row,
        "old_container_name": row.old_container.name if row.old_container else None,
        "new_container_name": row.new_container.name if row.new_container else None,
    }


class HistoryService(BaseService):
    logger_name = "clubhouse.inventory"

    def get_by_item(self, item_id: uuid.UUID, limit: int = 20) -> List[Dict[str, Any]]:
        with self.transaction() as trx:
            rows = (
                trx.query(models.InventoryHistory)
                .filter(models.InventoryHistory.item_id == item_id)
                .order_by(models.InventoryHistory.created_at.desc())
                .limit(limit)
                .all()
            )
            return [_entry(r) for r in rows]

    def get_recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        with self.transaction() as trx:
            rows = (
                trx.query(models.InventoryHistory)
                .order_by(models.InventoryHistory.created_at.desc())
                .limit(limit)
                .all()
            )
            return [_entry(r) for r in rows]
