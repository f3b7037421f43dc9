import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


AttributeType = Literal["text", "select", "number", "boolean"]
HistoryAction = Literal["created", "updated", "moved", "maintenance_out", "maintenance_in"]


class AttributeDefinition(BaseModel):
    name: Optional[str] = None
    label: str = Field(min_length=1)
    type: AttributeType
    required: bool = False
    options: Optional[List[str]] = None
    default_value: Optional[Any] = None

    @property
    def key(self) -> str:
        return self.name or self.label


class CategoryBase(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    available_attributes: List[AttributeDefinition] = Field(default_factory=list)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    available_attributes: Optional[List[AttributeDefinition]] = None


class Category(CategoryBase):
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ContainerBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    parent_container_id: Optional[uuid.UUID] = None


class ContainerCreate(ContainerBase):
    pass


class ContainerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    parent_container_id: Optional[uuid.UUID] = None


class Container(ContainerBase):
    id: uuid.UUID
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ItemBase(BaseModel):
    container_id: uuid.UUID
    category_id: uuid.UUID
    attributes: Dict[str, Any] = Field(default_factory=dict)
    quantity: int = Field(default=1, ge=1)
    notes: Optional[str] = Field(default=None, max_length=1000)
    out_for_maintenance: bool = False
    photo_url: Optional[str] = None


class ItemCreate(ItemBase):
    pass


class ItemUpdate(BaseModel):
    container_id: Optional[uuid.UUID] = None
    category_id: Optional[uuid.UUID] = None
    attributes: Optional[Dict[str, Any]] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    notes: Optional[str] = Field(default=None, max_length=1000)
    out_for_maintenance: Optional[bool] = None
    photo_url: Optional[str] = None


class ItemSearch(BaseModel):
    search: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    container_id: Optional[uuid.UUID] = None
    out_for_maintenance: Optional[bool] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)


class ItemMove(BaseModel):
    container_id: uuid.UUID
    notes: Optional[str] = Field(default=None, max_length=1000)


class ItemMaintenance(BaseModel):
    out_for_maintenance: bool
    notes: Optional[str] = Field(default=None, max_length=1000)


class Item(ItemBase):
    id: uuid.UUID
    created_by: Optional[uuid.UUID] = None
    updated_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
    container: Optional[Container] = None
    category: Optional[Category] = None
    model_config = ConfigDict(from_attributes=True)


class HistoryEntry(BaseModel):
    id: uuid.UUID
    item_id: uuid.UUID
    action: HistoryAction
    old_container_id: Optional[uuid.UUID] = None
    new_container_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    changed_by: Optional[uuid.UUID] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
