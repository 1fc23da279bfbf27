import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

ROLE_ADMIN = "admin"
ROLE_CARE_MANAGER = "care_manager"


def generate_id():
    """Generate a string UUID primary key"""
    return str(uuid.uuid4())


class Organization(Base):
    """Tenant boundary - every other record is scoped by org_id"""

    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    contact_email = Column(String(255), nullable=True)
    billing_plan = Column(String(50), nullable=True)
    # Org-wide default rate rule: {"hourlyRate", "minDuration", "rounding"}
    billing_rules_json = Column(JSON, default=dict, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    users = relationship("User", back_populates="organization")
    clients = relationship("Client", back_populates="organization")
    service_types = relationship("ServiceType", back_populates="organization")


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    role = Column(String(50), nullable=False)  # admin, care_manager
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="users")
    clients = relationship("Client", back_populates="primary_cm")


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=generate_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    # Care manager who owns this client; care_manager users only see their own clients
    primary_cm_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    status = Column(String(50), default="active")
    # Per-client rate rule overrides, resolved field by field over the org defaults
    billing_rules_json = Column(JSON, default=dict, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="clients")
    primary_cm = relationship("User", back_populates="clients")
    activities = relationship("Activity", back_populates="client")
    invoices = relationship("Invoice", back_populates="client")


class ServiceType(Base):
    """Named billable offering. Soft-deleted with is_active so old invoice items keep resolving."""

    __tablename__ = "service_types"

    id = Column(String(36), primary_key=True, default=generate_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    billing_code = Column(String(100), nullable=True)
    rate_type = Column(String(20), nullable=False)  # hourly, flat
    rate_amount = Column(Float, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="service_types")


class Activity(Base):
    """A unit of care-management work logged against a client"""

    __tablename__ = "activities"

    id = Column(String(36), primary_key=True, default=generate_id)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    cm_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    source = Column(String(50), nullable=False)  # phone, email, visit, manual
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=True)  # minutes
    billing_code = Column(String(100), nullable=True)
    is_billable = Column(Boolean, default=True, nullable=False)
    is_flagged = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    service_type_id = Column(
        String(36), ForeignKey("service_types.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="activities")
    service_type = relationship("ServiceType")
