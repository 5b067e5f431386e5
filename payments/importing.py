from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

from django.conf import settings

from .exceptions import BulkImportError

CENTS = Decimal('0.01')
# Product.price is DecimalField(max_digits=12, decimal_places=2)
MAX_PRICE = Decimal('9999999999.99')


@dataclass
class ImportLineError:
    line: int
    message: str
    original_line: str

    def as_dict(self):
        return {'line': self.line, 'message': self.message, 'original_line': self.original_line}


@dataclass
class ImportPlan:
    """What a bulk import will do to the catalog.

    ``updates`` maps an existing product id to its new price; ``additions`` are
    (name, price) pairs for new products.
    """
    additions: List[Dict] = field(default_factory=list)
    updates: Dict[str, Decimal] = field(default_factory=dict)
    added: int = 0
    updated: int = 0
    errors: List[ImportLineError] = field(default_factory=list)

    def summary(self):
        return {
            'added': self.added,
            'updated': self.updated,
            'errors': [e.as_dict() for e in self.errors],
        }


def parse_price(raw: str) -> Optional[Decimal]:
    """Parse a price and round it to cents, the precision products are stored with."""
    try:
        price = Decimal(raw.strip())
        if not price.is_finite():
            return None
        return price.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return None


def plan_bulk_import(text, existing_products: Iterable, max_lines: Optional[int] = None) -> ImportPlan:
    """Build an import plan from ``name, price`` lines.

    Bad lines are collected as errors and skipped; only input that cannot be
    processed at all raises ``BulkImportError``. Names match case-insensitively
    against the catalog and against lines earlier in the same text.
    """
    if not isinstance(text, str):
        raise BulkImportError('Import data must be text')

    max_lines = max_lines or settings.PRODUCT_IMPORT_MAX_LINES
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) > max_lines:
        raise BulkImportError(f'Maximum {max_lines} products allowed')

    by_name = {p.name.strip().lower(): ('existing', p.product_id) for p in existing_products}
    plan = ImportPlan()

    for number, original in enumerate(lines, start=1):
        parts = original.split(',', 1)
        if len(parts) != 2:
            plan.errors.append(ImportLineError(number, 'Invalid format, expected "name, price"', original))
            continue

        name = parts[0].strip()
        if not name:
            plan.errors.append(ImportLineError(number, 'Product name is required', original))
            continue

        price = parse_price(parts[1])
        if price is None:
            plan.errors.append(ImportLineError(number, 'Price must be a number', original))
            continue
        if price <= 0:
            plan.errors.append(ImportLineError(number, 'Price must be greater than 0', original))
            continue
        if price > MAX_PRICE:
            plan.errors.append(ImportLineError(number, f'Price must not exceed {MAX_PRICE}', original))
            continue

        key = name.lower()
        match = by_name.get(key)
        if match is None:
            plan.additions.append({'name': name, 'price': price})
            by_name[key] = ('new', len(plan.additions) - 1)
            plan.added += 1
        elif match[0] == 'existing':
            plan.updates[match[1]] = price
            plan.updated += 1
        else:
            plan.additions[match[1]]['price'] = price
            plan.updated += 1

    return plan
