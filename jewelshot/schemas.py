"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import Optional, List, Dict, Any, Generic, TypeVar, Literal
from pydantic import BaseModel, Field, EmailStr

from jewelshot.config import settings
from jewelshot.db.models import GenerationMode

T = TypeVar("T")


# ============ Envelope ============

class ActionResult(BaseModel, Generic[T]):
    """Uniform result of every UI-facing action."""
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ActionResult":
        return cls(success=False, error=error)


class ValidationResult(BaseModel):
    valid: bool
    error: Optional[str] = None


# ============ Auth Schemas ============

class UserCreate(BaseModel):
    email: EmailStr
    password: str
    full_name: Optional[str] = Field(None, max_length=255)


class UserLogin(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    role: str
    created_at: datetime

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# ============ Profile Schemas ============

class ProfileResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    credits: int
    plan: str
    storage_used: int
    ai_generation_count: int
    created_at: datetime

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=255)
    avatar_url: Optional[str] = Field(None, max_length=1024)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str


class AvatarResponse(BaseModel):
    avatar_url: str


# ============ Credits Schemas ============

class CreditsResponse(BaseModel):
    credits: int
    plan: str


class CreditBalance(BaseModel):
    remaining_credits: int


class CreditAvailability(BaseModel):
    has_credits: bool


class AddCreditsRequest(BaseModel):
    user_id: str
    amount: int


class PurchaseResponse(BaseModel):
    id: str
    pack_id: str
    amount: int
    credits: int
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class CheckoutRequest(BaseModel):
    pack_id: str


class CheckoutResponse(BaseModel):
    checkout_url: str
    session_id: str


# ============ Rate Limit Schemas ============

class RateLimitResult(BaseModel):
    allowed: bool
    remaining: int
    reset_at: datetime
    error: Optional[str] = None


# ============ Storage Schemas ============

class UploadResult(BaseModel):
    url: str
    path: str
    bucket: str


# ============ Prompt Schemas ============

class BuiltPrompt(BaseModel):
    prompt: str
    negative_prompt: str


class PromptRequest(BaseModel):
    mode: GenerationMode = GenerationMode.QUICK
    jewelry_type: str = Field(..., min_length=1, max_length=50)
    gender: Literal["women", "men"] = "women"
    aspect_ratio: str = "9:16"
    preset_id: Optional[str] = None
    # Selective mode
    model: Optional[str] = None
    location: Optional[str] = None
    mood: Optional[str] = None
    # Advanced mode
    custom_prompt: Optional[str] = None
    custom_negative_prompt: Optional[str] = None


class PromptValidationRequest(BaseModel):
    prompt: str
    negative_prompt: Optional[str] = None


# ============ Generation Schemas ============

class GenerateRequest(BaseModel):
    """Form fields accompanying the uploaded photo."""
    prompt: str
    negative_prompt: Optional[str] = None
    strength: float = Field(default_factory=lambda: settings.default_strength, ge=0.0, le=1.0)
    guidance_scale: float = Field(default_factory=lambda: settings.default_guidance_scale, ge=1.0, le=20.0)
    seed: Optional[int] = None
    mode: GenerationMode = GenerationMode.QUICK
    preset_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class GenerateResponse(BaseModel):
    image_url: str
    generation_id: Optional[str] = None
    image_id: Optional[str] = None


class GenerationSummary(BaseModel):
    id: str
    model_name: str
    prompt: str
    negative_prompt: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None
    status: str
    inference_time: Optional[float] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ============ Gallery Schemas ============

class GalleryImage(BaseModel):
    id: str
    original_url: str
    edited_url: Optional[str] = None
    file_name: str
    file_size: int
    storage_path: str
    created_at: datetime
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="image_metadata")
    ai_generations: List[GenerationSummary] = Field(default_factory=list, validation_alias="generations")

    class Config:
        from_attributes = True


class GenerationHistoryItem(GenerationSummary):
    image: Optional[GalleryImage] = None


class GalleryFilters(BaseModel):
    jewelry_type: Optional[str] = None
    mode: Optional[GenerationMode] = None
    search_query: Optional[str] = Field(None, max_length=200)
    sort_by: Literal["newest", "oldest"] = "newest"
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class GalleryPage(BaseModel):
    images: List[GalleryImage]
    count: int


class GalleryStats(BaseModel):
    total_images: int
    total_generations: int
    storage_used: int
