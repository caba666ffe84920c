"""
Schemas for the community feed, shop and admin content.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from permaculture_planner.services.feed import POST_TYPES, REACTION_TYPES
from permaculture_planner.services.shop import PRODUCT_CATEGORIES


class PostCreate(BaseModel):
    post_type: str = Field(..., description="text, photo or ai_insight")
    content: Optional[str] = None
    media_urls: List[str] = Field(default_factory=list)
    caption: Optional[str] = None
    tagged_zones: List[str] = Field(default_factory=list)
    hashtags: List[str] = Field(default_factory=list)
    ai_analysis_id: Optional[str] = None

    @field_validator("post_type")
    @classmethod
    def check_type(cls, value: str) -> str:
        if value not in POST_TYPES:
            raise ValueError(f"post_type must be one of {', '.join(POST_TYPES)}")
        return value

    @model_validator(mode="after")
    def text_needs_content(self):
        if self.post_type == "text" and not (self.content or "").strip():
            raise ValueError("Text posts require content")
        return self


class ReactionRequest(BaseModel):
    reaction_type: str

    @field_validator("reaction_type")
    @classmethod
    def check_reaction(cls, value: str) -> str:
        if value not in REACTION_TYPES:
            raise ValueError(f"reaction_type must be one of {', '.join(REACTION_TYPES)}")
        return value


class CommentCreate(BaseModel):
    content: str = Field(..., max_length=2000)
    parent_comment_id: Optional[str] = None

    @field_validator("content")
    @classmethod
    def strip_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Comment content is required")
        return value


def _check_category(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in PRODUCT_CATEGORIES:
        raise ValueError(f"category must be one of {', '.join(PRODUCT_CATEGORIES)}")
    return value


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: str
    price_cents: int = Field(..., gt=0, strict=True)
    description: Optional[str] = None
    quantity_in_stock: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    image_url: Optional[str] = None
    is_published: bool = True

    @field_validator("category")
    @classmethod
    def check_category(cls, value: Optional[str]) -> Optional[str]:
        return _check_category(value)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    price_cents: Optional[int] = Field(None, gt=0, strict=True)
    description: Optional[str] = None
    quantity_in_stock: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    image_url: Optional[str] = None
    is_published: Optional[bool] = None

    @field_validator("category")
    @classmethod
    def check_category(cls, value: Optional[str]) -> Optional[str]:
        return _check_category(value)


class ShopSettingsUpdate(BaseModel):
    is_shop_enabled: Optional[bool] = None
    shop_headline: Optional[str] = Field(None, max_length=200)
    shop_banner_url: Optional[str] = None
    shop_policy: Optional[str] = None
    accepts_pickup: Optional[bool] = None
    accepts_shipping: Optional[bool] = None
    accepts_delivery: Optional[bool] = None
    delivery_radius_miles: Optional[float] = Field(None, ge=0)


class BlogPostCreate(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    excerpt: Optional[str] = None
    cover_image_url: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_published: bool = False


class BlogPostUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = None
    excerpt: Optional[str] = None
    cover_image_url: Optional[str] = None
    tags: Optional[List[str]] = None
    is_published: Optional[bool] = None


class LessonCreate(BaseModel):
    topic_slug: str
    title: str = Field(..., min_length=1)
    slug: Optional[str] = None
    content: Dict[str, Any] = Field(default_factory=dict)
    estimated_minutes: int = Field(5, ge=1)
    xp_reward: int = Field(10, ge=0)
    difficulty: str = "beginner"


class LessonUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[Dict[str, Any]] = None
    estimated_minutes: Optional[int] = Field(None, ge=1)
    xp_reward: Optional[int] = Field(None, ge=0)
    difficulty: Optional[str] = None
    display_order: Optional[int] = None


class SpeciesCreate(BaseModel):
    common_name: str = Field(..., min_length=1)
    scientific_name: Optional[str] = None
    layer: Optional[str] = None
    is_native: bool = False
    broad_regions: List[str] = Field(default_factory=list)
    min_hardiness_zone: Optional[str] = None
    max_hardiness_zone: Optional[str] = None
    mature_height_ft: Optional[float] = None
    mature_width_ft: Optional[float] = None
    sun_requirements: Optional[str] = None
    water_requirements: Optional[str] = None
    permaculture_functions: List[str] = Field(default_factory=list)
    description: Optional[str] = None


class ChatRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=5000, description="The user's question")
    conversationId: Optional[str] = Field(None, description="Conversation to continue")
    farmId: Optional[str] = Field(None, description="Farm to ground the answer in")


class ChatResponse(BaseModel):
    """Response model for the /api/ai/chat endpoint."""
    response: str = Field(..., description="The assistant's answer")
    analysisId: str = Field(..., description="Stored exchange id")
    conversationId: str = Field(..., description="Conversation the exchange belongs to")
    cached: bool = Field(False, description="Whether the answer came from the response cache")


class ModelSettingUpdate(BaseModel):
    value: str = Field(..., min_length=1)
