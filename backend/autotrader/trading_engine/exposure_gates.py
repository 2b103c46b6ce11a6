"""
Exposure gates

Checks run before any order is submitted. A failed gate is a deliberate
skip, not an error: it comes back as a GateResult whose reason the
controller writes to the audit log.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class GateResult:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = GateResult(True)


def check_confidence(confidence: float, threshold: float) -> GateResult:
    """Confidence must strictly exceed the threshold."""
    if confidence > threshold:
        return ALLOWED
    return GateResult(
        False,
        f"Confidence {confidence * 100:.0f}% does not exceed the {threshold * 100:.0f}% threshold",
    )


def check_buy_exposure(
    base_asset: str,
    base_balance: float,
    quote_asset: str,
    quote_free: float,
    dust_threshold: float,
    min_quote_notional: float,
) -> GateResult:
    """No pyramiding: BUY only while flat in the base asset and with enough quote balance."""
    if base_balance > dust_threshold:
        return GateResult(False, f"Already holding {base_balance} {base_asset}; no pyramiding")
    if quote_free <= min_quote_notional:
        return GateResult(
            False,
            f"Insufficient {quote_asset} balance: {quote_free:.2f} (need more than {min_quote_notional:.2f})",
        )
    return ALLOWED


def check_sell_exposure(base_asset: str, base_free: float, quantity: float) -> GateResult:
    """SELL only when the free base balance covers the proposed quantity."""
    if quantity <= 0:
        return GateResult(False, f"Sell quantity must be positive, got {quantity}")
    if base_free < quantity:
        return GateResult(False, f"Insufficient {base_asset} balance: {base_free} < {quantity}")
    return ALLOWED
