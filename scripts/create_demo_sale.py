"""
Create a demo sale for testing and demos.

Creates one sale covering every discount tier:
- 3 x Espresso Beans at 10.00 USD (no discount)
- 5 x Paper Filters at 10.00 USD (10% discount)
- 15 x Ceramic Mugs at 10.00 USD (20% discount)

Uses the repository selected by SALES_REPOSITORY (memory by default).
"""

import argparse
import logging
import sys
from decimal import Decimal
from pathlib import Path
from uuid import UUID

# Add parent directory to path so we can import from services
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import get_settings
from repositories.sale_repository import create_sale_repository
from services.event_publisher import LoggingEventPublisher
from services.sale_service import CreateSaleRequest, SaleItemRequest, SaleService


DEMO_CUSTOMER_ID = UUID("123e4567-e89b-12d3-a456-426614174002")
DEMO_BRANCH_ID = UUID("123e4567-e89b-12d3-a456-426614174005")

DEMO_ITEMS = [
    (UUID("123e4567-e89b-12d3-a456-426614174010"), "Espresso Beans 1kg", "Coffee", 3),
    (UUID("123e4567-e89b-12d3-a456-426614174011"), "Paper Filters", "Accessories", 5),
    (UUID("123e4567-e89b-12d3-a456-426614174012"), "Ceramic Mug", "Tableware", 15),
]


def create_demo_sale(sale_number=None, cancel_reason=None):
    """Create the demo sale and print its totals."""

    service = SaleService(create_sale_repository(get_settings()), LoggingEventPublisher())

    request = CreateSaleRequest(
        customer_id=DEMO_CUSTOMER_ID,
        customer_name="Demo Customer",
        customer_email="demo@example.com",
        branch_id=DEMO_BRANCH_ID,
        branch_name="Downtown",
        branch_location="Main Street 1",
        sale_number=sale_number,
        items=[
            SaleItemRequest(
                product_id=product_id,
                product_name=name,
                product_category=category,
                product_unit_price=Decimal("10.00"),
                quantity=quantity,
            )
            for product_id, name, category, quantity in DEMO_ITEMS
        ],
    )

    sale = service.create_sale(request)

    print(f"[SUCCESS] Demo sale created: {sale.sale_number} ({sale.id})")
    for item in sale.items:
        print(
            f"  {item.quantity:>2} x {item.product.name:<20} "
            f"subtotal {item.subtotal}  discount {item.discount}  total {item.line_total}"
        )
    print(f"  Subtotal:       {sale.subtotal}")
    print(f"  Total discount: {sale.total_discount}")
    print(f"  Total amount:   {sale.total_amount}")

    if cancel_reason:
        sale = service.cancel_sale(sale.id, cancel_reason)
        print(f"  Status: {sale.status.value} ({sale.cancellation_reason})")

    return sale


def main():
    parser = argparse.ArgumentParser(description="Create a demo sale")
    parser.add_argument("--sale-number", help="Explicit sale number (generated if omitted)")
    parser.add_argument("--cancel", metavar="REASON", help="Cancel the sale afterwards with this reason")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, get_settings().log_level, logging.INFO))
    create_demo_sale(sale_number=args.sale_number, cancel_reason=args.cancel)


if __name__ == "__main__":
    main()
