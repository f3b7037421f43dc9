import uuid
from sqlalchemy import Column, String, Text, Integer, DateTime, Boolean, ForeignKey, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class EquipmentCategory(Base):
    __tablename__ = 'equipment_categories'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    # [{name, label, type, required, options?, default_value?}]
    available_attributes = Column(JSONB, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)


class Container(Base):
    __tablename__ = 'containers'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    parent_container_id = Column(UUID(as_uuid=True), ForeignKey('containers.id', ondelete='SET NULL'), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_containers_parent_container_id', 'parent_container_id'),
    )


class InventoryItem(Base):
    __tablename__ = 'inventory_items'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    container_id = Column(UUID(as_uuid=True), ForeignKey('containers.id'), nullable=False)
    category_id = Column(UUID(as_uuid=True), ForeignKey('equipment_categories.id'), nullable=False)
    attributes = Column(JSONB, nullable=False, default=dict)
    quantity = Column(Integer, nullable=False, default=1)
    notes = Column(Text, nullable=True)
    out_for_maintenance = Column(Boolean, nullable=False, default=False)
    photo_url = Column(Text, nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id', ondelete='SET NULL'), nullable=True)
    updated_by = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    container = relationship('Container', lazy='joined')
    category = relationship('EquipmentCategory', lazy='joined')

    __table_args__ = (
        Index('ix_inventory_items_container_id', 'container_id'),
        Index('ix_inventory_items_category_id', 'category_id'),
        CheckConstraint('quantity > 0', name='ck_inventory_items_quantity'),
    )


class InventoryHistory(Base):
    __tablename__ = 'inventory_history'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    item_id = Column(UUID(as_uuid=True), ForeignKey('inventory_items.id', ondelete='CASCADE'), nullable=False)
    action = Column(String, nullable=False)
    old_container_id = Column(UUID(as_uuid=True), ForeignKey('containers.id', ondelete='SET NULL'), nullable=True)
    new_container_id = Column(UUID(as_uuid=True), ForeignKey('containers.id', ondelete='SET NULL'), nullable=True)
    notes = Column(Text, nullable=True)
    changed_by = Column(UUID(as_uuid=True), ForeignKey('user_profiles.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    old_container = relationship('Container', foreign_keys=[old_container_id], lazy='joined')
    new_container = relationship('Container', foreign_keys=[new_container_id], lazy='joined')

    __table_args__ = (
        Index('ix_inventory_history_item_id', 'item_id'),
        Index('ix_inventory_history_created_at', 'created_at'),
        CheckConstraint(
            "action in ('created','updated','moved','maintenance_out','maintenance_in')",
            name='ck_inventory_history_action',
        ),
    )
