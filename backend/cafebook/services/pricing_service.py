"""Tier pricing and ticket options.

Prices come from ``console_pricing`` cells keyed by (console, quantity,
duration). A 90 minute booking is the 60 minute cell plus the 30 minute
cell. A missing row or NULL price means the combination is not sold.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from cafebook.core.errors import ValidationError
from cafebook.models.cafe import Cafe, ConsolePricing, ConsoleType

logger = logging.getLogger(__name__)

SUPPORTED_DURATIONS = (30, 60, 90)
TIER_DURATIONS = (30, 60)

DURATION_TEXT = {30: "30 minutes", 60: "1 hour", 90: "1.5 hours"}

PriceGrid = Dict[Tuple[int, int], Optional[Decimal]]


@dataclass
class TicketOption:
    id: str
    console: str
    title: str
    players: int
    price: Decimal
    description: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "console": self.console,
            "title": self.title,
            "players": self.players,
            "price": float(self.price),
            "description": self.description,
        }


CENT = Decimal("0.01")


def splits_evenly(price: Decimal, quantity: int) -> bool:
    """True when a group price divides into whole paise per console."""
    return (Decimal(price) / quantity).quantize(CENT) * quantity == Decimal(price)


def validate_duration(duration_minutes: int) -> int:
    if duration_minutes not in SUPPORTED_DURATIONS:
        raise ValidationError(
            f"duration_minutes must be one of {', '.join(str(d) for d in SUPPORTED_DURATIONS)}"
        )
    return duration_minutes


def load_price_grid(db: Session, cafe_id: int, console: ConsoleType) -> PriceGrid:
    """All cells for one console, keyed by (quantity, duration)."""
    rows = (
        db.query(ConsolePricing)
        .filter(ConsolePricing.cafe_id == cafe_id, ConsolePricing.console_type == console.value)
        .all()
    )
    return {(row.quantity, row.duration_minutes): row.price for row in rows}


def price_from_grid(grid: PriceGrid, quantity: int, duration_minutes: int) -> Optional[Decimal]:
    if duration_minutes == 90:
        price_60 = grid.get((quantity, 60))
        price_30 = grid.get((quantity, 30))
        if price_60 is None or price_30 is None:
            return None
        return Decimal(price_60) + Decimal(price_30)
    price = grid.get((quantity, duration_minutes))
    return Decimal(price) if price is not None else None


def get_price(
    db: Session,
    cafe_id: int,
    console: ConsoleType,
    quantity: int,
    duration_minutes: int,
) -> Optional[Decimal]:
    """Price for the whole group of ``quantity`` consoles, or None if not sold."""
    if quantity < 1 or quantity > console.max_quantity:
        return None
    if duration_minutes not in SUPPORTED_DURATIONS:
        return None
    return price_from_grid(load_price_grid(db, cafe_id, console), quantity, duration_minutes)


def ticket_title(console: ConsoleType, quantity: int) -> str:
    return f"{console.label} | {quantity} Console{'s' if quantity > 1 else ''}"


def generate_tickets(db: Session, cafe: Cafe, console: ConsoleType, duration_minutes: int) -> List[TicketOption]:
    validate_duration(duration_minutes)
    grid = load_price_grid(db, cafe.id, console)
    tickets = []
    for quantity in range(1, console.max_quantity + 1):
        price = price_from_grid(grid, quantity, duration_minutes)
        if price is None:
            continue
        tickets.append(TicketOption(
            id=f"{console.value}_{quantity}",
            console=console.value,
            title=ticket_title(console, quantity),
            players=quantity,
            price=price,
            description=(
                f"{quantity} {console.label} console{'s' if quantity > 1 else ''} "
                f"for {DURATION_TEXT[duration_minutes]}."
            ),
        ))
    return tickets


def list_cafe_tickets(db: Session, cafe: Cafe, duration_minutes: int) -> Dict[str, List[TicketOption]]:
    """Ticket options for every console the café actually has."""
    return {
        console.value: generate_tickets(db, cafe, console, duration_minutes)
        for console in ConsoleType
        if cafe.console_count(console) > 0
    }


def list_pricing(db: Session, cafe_id: int) -> List[ConsolePricing]:
    return (
        db.query(ConsolePricing)
        .filter(ConsolePricing.cafe_id == cafe_id)
        .order_by(ConsolePricing.console_type, ConsolePricing.duration_minutes, ConsolePricing.quantity)
        .all()
    )


def upsert_pricing(db: Session, cafe_id: int, cells: Iterable[dict]) -> List[ConsolePricing]:
    """Create or replace pricing cells. Caller commits."""
    saved = []
    for cell in cells:
        try:
            console = ConsoleType(cell.get("console_type"))
        except ValueError:
            raise ValidationError(f"Unknown console type: {cell.get('console_type')}")
        quantity = int(cell.get("quantity") or 0)
        duration = int(cell.get("duration_minutes") or 0)
        if quantity < 1 or quantity > console.max_quantity:
            raise ValidationError(f"quantity must be between 1 and {console.max_quantity} for {console.label}")
        if duration not in TIER_DURATIONS:
            raise ValidationError("duration_minutes must be 30 or 60")
        price = cell.get("price")
        if price is not None:
            price = Decimal(str(price))
            if price < 0:
                raise ValidationError("price must not be negative")
            if not splits_evenly(price, quantity):
                raise ValidationError(
                    f"price {price} for {quantity} {console.label} cannot be split evenly per console"
                )

        row = (
            db.query(ConsolePricing)
            .filter(
                ConsolePricing.cafe_id == cafe_id,
                ConsolePricing.console_type == console.value,
                ConsolePricing.quantity == quantity,
                ConsolePricing.duration_minutes == duration,
            )
            .first()
        )
        if row is None:
            row = ConsolePricing(
                cafe_id=cafe_id,
                console_type=console.value,
                quantity=quantity,
                duration_minutes=duration,
            )
            db.add(row)
        row.price = price
        saved.append(row)
    db.flush()
    logger.info(f"Saved {len(saved)} pricing cell(s) for cafe {cafe_id}")
    return saved
