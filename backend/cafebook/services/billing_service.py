"""Counter billing: the food and drink menu and adding items to a running session.

Stock is taken with a guarded UPDATE per item, so stock never goes negative
even with two counters selling the last can at once. A cart is all or
nothing: one short item rolls back the whole cart.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from cafebook.core.errors import ConflictError, NotFoundError, ValidationError
from cafebook.models.booking import Booking
from cafebook.models.inventory import BookingOrder, InventoryCategory, InventoryItem
from cafebook.services.booking_service import ACTIVE_STATUSES

logger = logging.getLogger(__name__)

ITEM_FIELDS = ("name", "category", "price", "stock_quantity", "is_available")


class BillingService:
    def __init__(self, db: Session):
        self.db = db

    # ==================== MENU ====================

    def list_items(self, cafe_id: int, available_only: bool = False) -> List[InventoryItem]:
        query = self.db.query(InventoryItem).filter(InventoryItem.cafe_id == cafe_id)
        if available_only:
            query = query.filter(InventoryItem.is_available.is_(True), InventoryItem.stock_quantity > 0)
        return query.order_by(InventoryItem.category, InventoryItem.name).all()

    def get_item(self, item_id: int) -> InventoryItem:
        item = self.db.get(InventoryItem, item_id)
        if item is None:
            raise NotFoundError("Item not found")
        return item

    def upsert_item(self, cafe_id: int, data: Dict[str, Any]) -> InventoryItem:
        """Create an item, or update one when ``data`` carries an id. Caller commits."""
        values = {k: v for k, v in data.items() if k in ITEM_FIELDS and v is not None}
        if "category" in values:
            try:
                values["category"] = InventoryCategory(values["category"]).value
            except ValueError:
                raise ValidationError(f"Unknown category: {values['category']}")
        if "price" in values:
            values["price"] = Decimal(str(values["price"]))
            if values["price"] < 0:
                raise ValidationError("price must not be negative")
        if "stock_quantity" in values and int(values["stock_quantity"]) < 0:
            raise ValidationError("stock_quantity must not be negative")

        item_id = data.get("id")
        if item_id:
            item = self.get_item(item_id)
            if item.cafe_id != cafe_id:
                raise NotFoundError("Item not found")
        else:
            if not (values.get("name") or "").strip() or "price" not in values:
                raise ValidationError("name and price are required")
            item = InventoryItem(cafe_id=cafe_id)
            self.db.add(item)

        for key, value in values.items():
            setattr(item, key, value)
        self.db.flush()
        return item

    def delete_item(self, item: InventoryItem) -> None:
        self.db.delete(item)
        self.db.flush()

    # ==================== ORDERS ====================

    @staticmethod
    def _merge_lines(lines: Iterable[Tuple[int, int]]) -> Dict[int, int]:
        merged: Dict[int, int] = {}
        for item_id, quantity in lines:
            if quantity is None or int(quantity) < 1:
                raise ValidationError("quantity must be at least 1")
            merged[int(item_id)] = merged.get(int(item_id), 0) + int(quantity)
        if not merged:
            raise ValidationError("items are required")
        return merged

    def add_items(self, booking_id: str, lines: Iterable[Tuple[int, int]]) -> Booking:
        """Sell menu items against an active booking and add them to its total."""
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        if booking.status not in ACTIVE_STATUSES:
            raise ValidationError(f"Booking is {booking.status}, items can only be added to an active booking")

        merged = self._merge_lines(lines)
        orders = []
        try:
            for item_id, quantity in merged.items():
                item = self.db.get(InventoryItem, item_id)
                if item is None or item.cafe_id != booking.cafe_id:
                    raise NotFoundError(f"Item {item_id} not found")
                if not item.is_available:
                    raise ValidationError(f"{item.name} is not available")

                taken = self.db.execute(
                    update(InventoryItem)
                    .where(InventoryItem.id == item_id, InventoryItem.stock_quantity >= quantity)
                    .values(stock_quantity=InventoryItem.stock_quantity - quantity)
                    .execution_options(synchronize_session=False)
                ).rowcount
                if taken != 1:
                    raise ConflictError(f"Not enough {item.name} in stock")

                unit_price = Decimal(item.price)
                orders.append(BookingOrder(
                    booking_id=booking.id,
                    inventory_item_id=item.id,
                    item_name=item.name,
                    quantity=quantity,
                    unit_price=unit_price,
                    total_price=unit_price * quantity,
                ))

            cart_total = sum((order.total_price for order in orders), Decimal("0.00"))
            charged = self.db.execute(
                update(Booking)
                .where(Booking.id == booking.id, Booking.status.in_(ACTIVE_STATUSES))
                .values(
                    subtotal_amount=Booking.subtotal_amount + cart_total,
                    total_amount=Booking.total_amount + cart_total,
                )
                .execution_options(synchronize_session=False)
            ).rowcount
            if charged != 1:
                raise ConflictError("Booking is no longer active")

            self.db.add_all(orders)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(f"Added {len(orders)} item line(s) worth {cart_total} to booking {booking.id}")
        return booking

    def list_orders(self, booking_id: str) -> List[BookingOrder]:
        return (
            self.db.query(BookingOrder)
            .filter(BookingOrder.booking_id == booking_id)
            .order_by(BookingOrder.id)
            .all()
        )
