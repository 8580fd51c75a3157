"""
Database Schemas

MongoDB document shapes and request bodies, as Pydantic models.
``Product`` is stored in the ``Products`` collection and ``User`` in
``Users``.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, model_validator


class Color(BaseModel):
    color: str = Field(..., min_length=1)
    images: List[HttpUrl] = Field(default_factory=list)
    quantity: int = Field(..., ge=0)


class Product(BaseModel):
    title: str = Field(..., min_length=7)
    price: float = Field(..., gt=0)
    discountPrice: Optional[float] = None
    ratingCount: int = Field(..., ge=0)
    avgRate: float = Field(..., ge=0, le=5)
    mainImgSRC: HttpUrl
    description: str = Field(..., min_length=10)
    category: str = Field(..., min_length=1)
    subCategory: str = Field(..., min_length=1)
    isFeatured: Optional[bool] = None
    isFlash: Optional[bool] = None
    isHook: Optional[bool] = None
    colors: List[Color] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_discount(self) -> "Product":
        if self.discountPrice is not None and self.discountPrice >= self.price:
            raise ValueError("discountPrice must be lower than price")
        return self


class ProductUpdate(BaseModel):
    """Partial product: only the fields being changed."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    price: Optional[float] = None
    discountPrice: Optional[float] = None
    ratingCount: Optional[int] = None
    avgRate: Optional[float] = None
    mainImgSRC: Optional[HttpUrl] = None
    description: Optional[str] = None
    category: Optional[str] = None
    subCategory: Optional[str] = None
    isFeatured: Optional[bool] = None
    isFlash: Optional[bool] = None
    isHook: Optional[bool] = None
    colors: Optional[List[Color]] = None


class User(BaseModel):
    fullName: str = Field(..., min_length=3, max_length=50, description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=6, description="Plain text, hashed before insert")
    role: Literal["user", "admin"] = "user"


class RegisterInput(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    fullName: Optional[str] = None
    role: Optional[str] = None


class LoginInput(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


def describe_errors(exc) -> str:
    """Flatten a pydantic ``ValidationError`` into one readable line."""
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{location}: {err.get('msg')}")
    return "; ".join(parts)
