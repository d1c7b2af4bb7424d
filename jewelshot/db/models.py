"""
Database models for Jewelshot

- users: auth identity (email + bcrypt hash)
- profiles: application-level user record (credits, plan, storage usage)
- images: uploaded originals and generated results
- ai_generations: one row per inference call, doubles as the rate-limit log
- purchases: credit-pack transactions
"""

from datetime import datetime
from typing import Optional, List
from enum import Enum
import uuid

from sqlalchemy import (
    String, Text, DateTime, Float, Integer, BigInteger, Boolean,
    ForeignKey, JSON, Index, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column

Base = declarative_base()


class UserRole(str, Enum):
    """User roles for access control"""
    ADMIN = "admin"  # Can grant credits
    USER = "user"


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"
    BUSINESS = "business"


class GenerationMode(str, Enum):
    """How the generation prompt is assembled"""
    QUICK = "quick"            # Named preset template
    SELECTIVE = "selective"    # Model style / location / mood combination
    ADVANCED = "advanced"      # User-supplied free text


class GenerationStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PurchaseStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class User(Base):
    """Auth identity. Distinct from Profile; removed last on account deletion."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default=UserRole.USER.value, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    profile: Mapped[Optional["Profile"]] = relationship("Profile", back_populates="user", uselist=False)


class Profile(Base):
    """
    Application-level user record.
    credits and storage_used are only ever changed through conditional
    UPDATE statements (see credit_service / storage_service).
    """
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), primary_key=True)
    email: Mapped[str] = mapped_column(String(255))
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    avatar_path: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)  # Object key in avatars bucket

    credits: Mapped[int] = mapped_column(Integer, default=0)
    plan: Mapped[str] = mapped_column(String(20), default=Plan.FREE.value)
    storage_used: Mapped[int] = mapped_column(BigInteger, default=0)  # bytes
    ai_generation_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user: Mapped["User"] = relationship("User", back_populates="profile")

    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_profiles_credits_non_negative"),
        CheckConstraint("storage_used >= 0", name="ck_profiles_storage_non_negative"),
    )


class Image(Base):
    """An uploaded original paired with its generated result."""
    __tablename__ = "images"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    original_url: Mapped[str] = mapped_column(String(1024))
    edited_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    storage_path: Mapped[str] = mapped_column(String(512))  # Key of the edited object
    file_name: Mapped[str] = mapped_column(String(255))
    file_size: Mapped[int] = mapped_column(BigInteger, default=0)
    # jewelryType, mode, presetId, originalPath, ...
    image_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    generations: Mapped[List["AIGeneration"]] = relationship(
        "AIGeneration",
        back_populates="image",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="AIGeneration.created_at",
    )

    __table_args__ = (
        Index("ix_images_user_created", "user_id", "created_at"),
    )


class AIGeneration(Base):
    """One inference call. Also the counting source for the rate limiter."""
    __tablename__ = "ai_generations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    image_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("images.id", ondelete="CASCADE"), nullable=True, index=True
    )
    model_name: Mapped[str] = mapped_column(String(100))
    prompt: Mapped[str] = mapped_column(Text)
    negative_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # strength, guidanceScale, seed, mode, presetId
    parameters: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=GenerationStatus.PENDING.value)
    inference_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # seconds
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    image: Mapped[Optional["Image"]] = relationship("Image", back_populates="generations")

    __table_args__ = (
        Index("ix_ai_generations_user_created", "user_id", "created_at"),
    )


class Purchase(Base):
    """Credit-pack transaction."""
    __tablename__ = "purchases"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    pack_id: Mapped[str] = mapped_column(String(50))
    amount: Mapped[int] = mapped_column(Integer)  # cents
    credits: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(20), default=PurchaseStatus.PENDING.value)
    stripe_session_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
