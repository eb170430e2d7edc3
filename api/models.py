"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.

Request models pre-check request shape only; the domain model still enforces
its own rules and its errors are reported by the routers.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


# ============================================================================
# Shared Models
# ============================================================================

class MoneyResponse(BaseModel):
    """Amount with its currency code."""
    amount: Decimal
    currency: str


class CustomerResponse(BaseModel):
    customer_id: UUID
    name: str
    email: str


class BranchResponse(BaseModel):
    branch_id: UUID
    name: str
    location: str


# ============================================================================
# Sale Request Models
# ============================================================================

class SaleItemPayload(BaseModel):
    """A product line in a create-sale or add-item request."""
    product_id: UUID
    product_name: str = Field(..., min_length=1, max_length=200)
    product_category: str = Field(..., min_length=1, max_length=100)
    product_unit_price: Decimal = Field(..., gt=0, description="Catalogue price of the product")
    product_currency: str = Field("USD", min_length=3, max_length=3)
    quantity: int = Field(
        ...,
        ge=1,
        le=20,
        description="Units of this product (cannot sell more than 20 of the same product)"
    )
    unit_price: Optional[Decimal] = Field(
        None,
        gt=0,
        description="Override for the catalogue price"
    )
    unit_price_currency: Optional[str] = Field(None, min_length=3, max_length=3)

    class Config:
        json_schema_extra = {
            "example": {
                "product_id": "123e4567-e89b-12d3-a456-426614174010",
                "product_name": "Espresso Beans 1kg",
                "product_category": "Coffee",
                "product_unit_price": "10.00",
                "product_currency": "USD",
                "quantity": 5
            }
        }


class CreateSaleRequest(BaseModel):
    """Request to create a sale."""
    customer_id: UUID
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: str = Field(..., max_length=250, pattern=_EMAIL_PATTERN)
    branch_id: UUID
    branch_name: str = Field(..., min_length=1, max_length=200)
    branch_location: str = Field(..., min_length=1, max_length=200)
    sale_number: Optional[str] = Field(
        None,
        min_length=1,
        max_length=50,
        description="Business sale number; generated when omitted"
    )
    sale_date: Optional[datetime] = Field(None, description="Defaults to the current time")
    items: List[SaleItemPayload] = Field(
        ...,
        min_length=1,
        max_length=50,
        description="At least one item; at most 50 different products"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "customer_id": "123e4567-e89b-12d3-a456-426614174002",
                "customer_name": "Demo Customer",
                "customer_email": "demo@example.com",
                "branch_id": "123e4567-e89b-12d3-a456-426614174005",
                "branch_name": "Downtown",
                "branch_location": "Main Street 1",
                "items": [
                    {
                        "product_id": "123e4567-e89b-12d3-a456-426614174010",
                        "product_name": "Espresso Beans 1kg",
                        "product_category": "Coffee",
                        "product_unit_price": "10.00",
                        "quantity": 5
                    }
                ]
            }
        }


class UpdateItemQuantityRequest(BaseModel):
    quantity: int = Field(..., ge=1, le=20)


class CancelSaleRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)

    class Config:
        json_schema_extra = {
            "example": {
                "reason": "customer request"
            }
        }


# ============================================================================
# Sale Response Models
# ============================================================================

class SaleItemResponse(BaseModel):
    """Single line item of a sale."""
    item_id: UUID
    product_id: UUID
    product_name: str
    product_category: str
    quantity: int
    unit_price: MoneyResponse
    discount: MoneyResponse
    discount_percentage: Decimal
    subtotal: MoneyResponse
    line_total: MoneyResponse


class SaleSummaryResponse(BaseModel):
    """Sale without its line items (list views)."""
    sale_id: UUID
    sale_number: str
    sale_date: datetime
    customer: CustomerResponse
    branch: BranchResponse
    status: str  # ACTIVE or CANCELLED
    is_cancelled: bool
    cancellation_reason: Optional[str] = None
    item_count: int
    total_quantity: int
    subtotal: MoneyResponse
    total_discount: MoneyResponse
    total_amount: MoneyResponse
    created_at: datetime
    modified_at: Optional[datetime] = None


class SaleResponse(SaleSummaryResponse):
    """Complete sale including line items."""
    items: List[SaleItemResponse]
    sale_level_discount: MoneyResponse

    class Config:
        json_schema_extra = {
            "example": {
                "sale_id": "123e4567-e89b-12d3-a456-426614174003",
                "sale_number": "S20250101120000123",
                "sale_date": "2025-01-01T12:00:00Z",
                "status": "ACTIVE",
                "is_cancelled": False,
                "item_count": 1,
                "total_quantity": 5,
                "subtotal": {"amount": "50.00", "currency": "USD"},
                "total_discount": {"amount": "5.00", "currency": "USD"},
                "total_amount": {"amount": "45.00", "currency": "USD"}
            }
        }


class SaleListResponse(BaseModel):
    """Response for sale listing."""
    items: List[SaleSummaryResponse]
    total_count: int
    filters_applied: dict


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str

    class Config:
        json_schema_extra = {
            "example": {
                "detail": "Cannot modify a cancelled sale"
            }
        }
