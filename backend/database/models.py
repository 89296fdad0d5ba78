"""
PostgreSQL Database Models - SQLAlchemy ORM
One table per GearGuard collection
"""
from datetime import date, datetime
from typing import Optional
from sqlalchemy import (
    String, Text, Date, DateTime, Boolean, Float, JSON, Index
)
from sqlalchemy.orm import Mapped, mapped_column
import uuid as uuid_lib

from .connection import Base


def _new_id() -> str:
    return str(uuid_lib.uuid4())


# ==================== USER MODEL ====================

class User(Base):
    """User table - admins, managers, technicians and requesters"""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    department: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


# ==================== TEAM MODEL ====================

class Team(Base):
    """Maintenance team - member order matters, the first member gets new requests"""
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    member_ids: Mapped[list] = mapped_column(JSON, default=list)  # ordered user ids
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


# ==================== EQUIPMENT MODELS ====================

class EquipmentCategory(Base):
    __tablename__ = "equipment_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    responsible: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class WorkCenter(Base):
    __tablename__ = "work_centers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    cost_per_hour: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    cost_target: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    allocated_man_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Equipment(Base):
    """Equipment table - status becomes Scrapped through the scrap cascade"""
    __tablename__ = "equipment"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    serial_number: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(255), default="")
    department_id: Mapped[str] = mapped_column(String(255), default="")
    assigned_to_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    purchase_date: Mapped[str] = mapped_column(String(32), default="")
    warranty_expiry: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    location: Mapped[str] = mapped_column(String(255), default="")
    maintenance_team_id: Mapped[str] = mapped_column(String(36), default="", index=True)
    status: Mapped[str] = mapped_column(String(20), default="Active", index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    work_center_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    scrap_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


# ==================== MAINTENANCE REQUEST MODELS ====================

class MaintenanceRequest(Base):
    """Maintenance request - isOverdue is derived on read, never stored"""
    __tablename__ = "maintenance_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    maintenance_for: Mapped[str] = mapped_column(String(20), default="Equipment")
    equipment_id: Mapped[str] = mapped_column(String(36), default="", index=True)
    work_center_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    requested_by_user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    assigned_to_user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    team_id: Mapped[str] = mapped_column(String(36), default="", index=True)
    stage: Mapped[str] = mapped_column(String(20), default="New", index=True)
    priority: Mapped[str] = mapped_column(String(10), default="Medium")
    scheduled_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    completed_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    duration_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_requests_equipment_stage', 'equipment_id', 'stage'),
        Index('idx_requests_team_stage', 'team_id', 'stage'),
    )


class TrackingLog(Base):
    """Append-only progress notes on a request"""
    __tablename__ = "tracking_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    request_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Requirement(Base):
    """Parts / cost submission awaiting admin review"""
    __tablename__ = "requirements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    request_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    submitted_by: Mapped[str] = mapped_column(String(36), nullable=False)
    pricing: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    products: Mapped[list] = mapped_column(JSON, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


# ==================== NOTIFICATION MODEL ====================

class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    related_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_notifications_user_created_at', 'user_id', 'created_at'),
    )
