"""
Invoice domain: aggregation of time entries into per-project lines, numbering.

All hours, rates and amounts are scaled integers (see hourbook.domain.scaled).
"""
from dataclasses import dataclass, field

from hourbook.domain.scaled import scaled_product

INVOICE_STATUSES = ("draft", "sent", "paid")


@dataclass(frozen=True)
class EntryRow:
    """One time entry as seen by the invoice aggregation"""
    project_id: int
    project_name: str
    hourly_rate: int
    vat_type: str
    duration_hours: int


@dataclass(frozen=True)
class InvoiceLine:
    project_id: int
    project_name: str
    hours: int
    rate: int
    amount: int
    vat_type: str


@dataclass(frozen=True)
class InvoicePreview:
    month: int
    year: int
    items: list[InvoiceLine] = field(default_factory=list)
    total_amount: int = 0
    entry_count: int = 0


@dataclass(frozen=True)
class GeneratedInvoice:
    id: int
    invoice_number: str


def aggregate_invoice_lines(rows: list[EntryRow]) -> tuple[list[InvoiceLine], int]:
    """
    Group entries by project, sum hours and price each group.

    Lines keep the order in which projects first appear in ``rows``.
    The total is the sum of the rounded line amounts.

    Example:
        >>> rows = [EntryRow(1, "A", 15000, "exclusive", 150),
        ...         EntryRow(1, "A", 15000, "exclusive", 50)]
        >>> lines, total = aggregate_invoice_lines(rows)
        >>> lines[0].hours, lines[0].amount, total
        (200, 30000, 30000)
    """
    grouped: dict[int, list] = {}
    for row in rows:
        bucket = grouped.get(row.project_id)
        if bucket is None:
            grouped[row.project_id] = [row, row.duration_hours]
        else:
            bucket[1] += row.duration_hours

    lines = []
    for first, hours in grouped.values():
        lines.append(InvoiceLine(
            project_id=first.project_id,
            project_name=first.project_name,
            hours=hours,
            rate=first.hourly_rate,
            amount=scaled_product(hours, first.hourly_rate),
            vat_type=first.vat_type,
        ))

    total = sum(line.amount for line in lines)
    return lines, total


def format_invoice_number(year: int, month: int, sequence: int) -> str:
    """2025, 11, 1 -> "2025-11-001" """
    return f"{year}-{month:02d}-{sequence:03d}"
