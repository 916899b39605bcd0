"""Invoice numbers: ``{prefix}-{zero-padded sequence}``, e.g. ``INV-00025``.

Sequences come from the persistence layer's counter, allocated inside the
same transaction that writes the invoice.
"""

from __future__ import annotations

from typing import Protocol


class SequenceSource(Protocol):
    def allocate_sequence(self, prefix: str, hint: int = 0) -> int: ...


def format_invoice_number(prefix: str, sequence: int, width: int = 5) -> str:
    """Wider sequences are kept whole, never truncated."""
    if sequence <= 0:
        raise ValueError(f"Invoice sequence must be positive, got {sequence}")
    return f"{prefix}-{sequence:0{width}d}"


def next_invoice_number(
    source: SequenceSource,
    prefix: str,
    sequence_hint: int = 0,
    width: int = 5,
) -> tuple[str, int]:
    """Allocate the next number above ``sequence_hint``.

    Returns the formatted number and the raw sequence, which the caller
    feeds back as the hint if the number turns out to be taken.
    """
    sequence = source.allocate_sequence(prefix, sequence_hint)
    return format_invoice_number(prefix, sequence, width), sequence
