"""
Sales API Endpoints.

Endpoints for creating, querying, modifying and cancelling sales.

Domain errors are mapped onto HTTP statuses:
- invalid values and currency mismatches -> 400 (request validation
  failures are reported as 400 too, by the handler in api/main.py)
- missing sales or items -> 404
- conflicts with the sale's state (cancelled, duplicate number) -> 409
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from api.dependencies import get_sale_service
from api.models import (
    BranchResponse,
    CancelSaleRequest,
    CreateSaleRequest as APICreateSaleRequest,
    CustomerResponse,
    ErrorResponse,
    MoneyResponse,
    SaleItemPayload,
    SaleItemResponse,
    SaleListResponse,
    SaleResponse,
    SaleSummaryResponse,
    UpdateItemQuantityRequest,
)
from domain.errors import (
    CurrencyMismatch,
    InvalidArgument,
    NotFound,
    SalesDomainError,
    StateConflict,
)
from domain.money import Money
from domain.sale import Sale, discount_percentage_for
from domain.sale_item import SaleItem
from services.sale_service import (
    CreateSaleRequest,
    SaleFilters,
    SaleItemRequest,
    SaleService,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid sale data"},
    404: {"model": ErrorResponse, "description": "Sale or item not found"},
    409: {"model": ErrorResponse, "description": "Sale state conflict"},
}


# ============================================================================
# Mapping helpers
# ============================================================================

def _money(value: Money) -> MoneyResponse:
    return MoneyResponse(amount=value.amount, currency=value.currency)


def _item_response(item: SaleItem) -> SaleItemResponse:
    return SaleItemResponse(
        item_id=item.id,
        product_id=item.product_id,
        product_name=item.product.name,
        product_category=item.product.category,
        quantity=item.quantity,
        unit_price=_money(item.unit_price),
        discount=_money(item.discount),
        discount_percentage=discount_percentage_for(item.quantity),
        subtotal=_money(item.subtotal),
        line_total=_money(item.line_total),
    )


def _summary_fields(sale: Sale) -> dict:
    return {
        "sale_id": sale.id,
        "sale_number": sale.sale_number,
        "sale_date": sale.sale_date,
        "customer": CustomerResponse(
            customer_id=sale.customer.customer_id,
            name=sale.customer.name,
            email=sale.customer.email,
        ),
        "branch": BranchResponse(
            branch_id=sale.branch.branch_id,
            name=sale.branch.name,
            location=sale.branch.location,
        ),
        "status": sale.status.value,
        "is_cancelled": sale.is_cancelled,
        "cancellation_reason": sale.cancellation_reason,
        "item_count": sale.item_count,
        "total_quantity": sale.total_quantity,
        "subtotal": _money(sale.subtotal),
        "total_discount": _money(sale.total_discount),
        "total_amount": _money(sale.total_amount),
        "created_at": sale.created_at,
        "modified_at": sale.modified_at,
    }


def _sale_response(sale: Sale) -> SaleResponse:
    return SaleResponse(
        **_summary_fields(sale),
        items=[_item_response(item) for item in sale.items],
        sale_level_discount=_money(sale.sale_level_discount),
    )


def _item_request(payload: SaleItemPayload) -> SaleItemRequest:
    return SaleItemRequest(
        product_id=payload.product_id,
        product_name=payload.product_name,
        product_category=payload.product_category,
        product_unit_price=payload.product_unit_price,
        product_currency=payload.product_currency,
        quantity=payload.quantity,
        unit_price=payload.unit_price,
        unit_price_currency=payload.unit_price_currency,
    )


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""

    if value is None:
        return None
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _http_error(exc: SalesDomainError) -> HTTPException:
    if isinstance(exc, NotFound):
        status_code = 404
    elif isinstance(exc, StateConflict):
        status_code = 409
    elif isinstance(exc, (InvalidArgument, CurrencyMismatch)):
        status_code = 400
    else:
        status_code = 500
    return HTTPException(status_code=status_code, detail=str(exc))


def _internal_error(action: str, exc: Exception) -> HTTPException:
    logger.exception("Error %s", action)
    return HTTPException(
        status_code=500,
        detail=f"Failed to {action}: {str(exc)}"
    )


# ============================================================================
# Queries
# ============================================================================

@router.get(
    "/sales",
    response_model=SaleListResponse,
    summary="List Sales",
    description="List sales, newest first, optionally filtered by customer, branch and date range.",
    responses={400: _ERROR_RESPONSES[400]},
)
def list_sales(
    customer_id: Optional[UUID] = Query(None, description="Only sales of this customer"),
    branch_id: Optional[UUID] = Query(None, description="Only sales of this branch"),
    start_date: Optional[datetime] = Query(None, description="Sales on or after this time (UTC if no offset)"),
    end_date: Optional[datetime] = Query(None, description="Sales on or before this time (UTC if no offset)"),
    service: SaleService = Depends(get_sale_service),
):
    """
    List sales without their line items.

    **Example usage:**
    ```
    GET /api/v1/sales?customer_id=123e4567-e89b-12d3-a456-426614174002
    ```
    """
    filters = SaleFilters(
        customer_id=customer_id,
        branch_id=branch_id,
        start=_as_utc(start_date),
        end=_as_utc(end_date),
    )
    try:
        sales = service.list_sales(filters)
    except SalesDomainError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("list sales", e)

    filters_applied = {
        key: str(value)
        for key, value in {
            "customer_id": customer_id,
            "branch_id": branch_id,
            "start_date": filters.start.isoformat() if filters.start else None,
            "end_date": filters.end.isoformat() if filters.end else None,
        }.items()
        if value is not None
    }

    return SaleListResponse(
        items=[SaleSummaryResponse(**_summary_fields(sale)) for sale in sales],
        total_count=len(sales),
        filters_applied=filters_applied,
    )


@router.get(
    "/sales/by-number/{sale_number}",
    response_model=SaleResponse,
    summary="Get Sale By Number",
    responses={404: _ERROR_RESPONSES[404]},
)
def get_sale_by_number(sale_number: str, service: SaleService = Depends(get_sale_service)):
    """Get a complete sale, including line items, by its business sale number."""
    try:
        return _sale_response(service.get_sale_by_number(sale_number))
    except SalesDomainError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("get sale", e)


@router.get(
    "/sales/{sale_id}",
    response_model=SaleResponse,
    summary="Get Sale",
    responses={404: _ERROR_RESPONSES[404]},
)
def get_sale(sale_id: UUID, service: SaleService = Depends(get_sale_service)):
    """Get a complete sale, including line items and calculated totals."""
    try:
        return _sale_response(service.get_sale(sale_id))
    except SalesDomainError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("get sale", e)


# ============================================================================
# Commands
# ============================================================================

@router.post(
    "/sales",
    response_model=SaleResponse,
    status_code=201,
    summary="Create Sale",
    description="Create a sale with its items. Quantity discounts are applied automatically.",
    responses={400: _ERROR_RESPONSES[400], 409: _ERROR_RESPONSES[409]},
)
def create_sale(request: APICreateSaleRequest, service: SaleService = Depends(get_sale_service)):
    """
    Create a new sale.

    **Quantity discounts (per product line):**
    - fewer than 4 units: no discount
    - 4 to 9 units: 10%
    - 10 to 20 units: 20%

    More than 20 units of one product cannot be sold. Listing the same
    product twice merges the lines, and the limit applies to the total.
    """
    service_request = CreateSaleRequest(
        customer_id=request.customer_id,
        customer_name=request.customer_name,
        customer_email=request.customer_email,
        branch_id=request.branch_id,
        branch_name=request.branch_name,
        branch_location=request.branch_location,
        items=[_item_request(item) for item in request.items],
        sale_number=request.sale_number,
        sale_date=_as_utc(request.sale_date),
    )
    try:
        sale = service.create_sale(service_request)
    except SalesDomainError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("create sale", e)
    return _sale_response(sale)


@router.post(
    "/sales/{sale_id}/items",
    response_model=SaleResponse,
    summary="Add Sale Item",
    responses=_ERROR_RESPONSES,
)
def add_sale_item(
    sale_id: UUID,
    payload: SaleItemPayload,
    service: SaleService = Depends(get_sale_service),
):
    """Add a product to a sale, merging with an existing line for the same product."""
    try:
        service.add_item(sale_id, _item_request(payload))
        return _sale_response(service.get_sale(sale_id))
    except SalesDomainError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("add sale item", e)


@router.patch(
    "/sales/{sale_id}/items/{item_id}",
    response_model=SaleResponse,
    summary="Update Item Quantity",
    responses=_ERROR_RESPONSES,
)
def update_sale_item(
    sale_id: UUID,
    item_id: UUID,
    payload: UpdateItemQuantityRequest,
    service: SaleService = Depends(get_sale_service),
):
    try:
        service.update_item_quantity(sale_id, item_id, payload.quantity)
        return _sale_response(service.get_sale(sale_id))
    except SalesDomainError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("update sale item", e)


@router.delete(
    "/sales/{sale_id}/items/{item_id}",
    response_model=SaleResponse,
    summary="Remove Sale Item",
    responses=_ERROR_RESPONSES,
)
def remove_sale_item(sale_id: UUID, item_id: UUID, service: SaleService = Depends(get_sale_service)):
    try:
        return _sale_response(service.remove_item(sale_id, item_id))
    except SalesDomainError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("remove sale item", e)


@router.post(
    "/sales/{sale_id}/cancel",
    response_model=SaleResponse,
    summary="Cancel Sale",
    description="Cancel a sale. Cancellation is final; a cancelled sale cannot be changed.",
    responses=_ERROR_RESPONSES,
)
def cancel_sale(
    sale_id: UUID,
    request: CancelSaleRequest,
    service: SaleService = Depends(get_sale_service),
):
    """
    Cancel a sale.

    **Example request:**
    ```json
    {
      "reason": "customer request"
    }
    ```
    """
    try:
        return _sale_response(service.cancel_sale(sale_id, request.reason))
    except SalesDomainError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("cancel sale", e)


@router.delete(
    "/sales/{sale_id}",
    status_code=204,
    summary="Delete Sale",
    responses={404: _ERROR_RESPONSES[404]},
)
def delete_sale(sale_id: UUID, service: SaleService = Depends(get_sale_service)):
    try:
        service.delete_sale(sale_id)
    except SalesDomainError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("delete sale", e)
    return Response(status_code=204)
