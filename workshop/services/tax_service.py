from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any

from stock.services.base_service import to_decimal

DEFAULT_GST_RATE = Decimal("18")


@dataclass(frozen=True)
class GSTBreakdown:
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    total: Decimal

    @property
    def gst_amount(self) -> Decimal:
        return self.cgst + self.sgst + self.igst

    def to_dict(self) -> dict:
        return {key: str(value) for key, value in asdict(self).items()}


def calculate_gst(base_amount: Any, gst_rate: Any = DEFAULT_GST_RATE, is_interstate: bool = False) -> GSTBreakdown:
    """
    Split GST on base_amount.

    Intrastate supplies carry CGST and SGST at half the rate each; interstate
    supplies carry the full rate as IGST. Negative amounts are not rejected.
    """
    base_amount = to_decimal(base_amount)
    gst_rate = to_decimal(gst_rate, DEFAULT_GST_RATE)

    gst_amount = base_amount * gst_rate / Decimal("100")
    total = base_amount + gst_amount

    if is_interstate:
        return GSTBreakdown(
            cgst=Decimal("0"),
            sgst=Decimal("0"),
            igst=gst_amount,
            total=total,
        )

    half = gst_amount / Decimal("2")
    return GSTBreakdown(
        cgst=half,
        sgst=half,
        igst=Decimal("0"),
        total=total,
    )
