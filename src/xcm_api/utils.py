"""Amount helpers for the XCM transfer submission engine."""

from decimal import Decimal, InvalidOperation, localcontext

from .exceptions import ValidationError


def parse_amount(amount: str | Decimal) -> Decimal:
    """Parse a human-readable decimal amount, rejecting non-positive values."""
    if isinstance(amount, Decimal):
        quantity = amount
    else:
        text = str(amount).strip()
        try:
            quantity = Decimal(text)
        except (ValueError, InvalidOperation) as exc:
            raise ValidationError(
                "Invalid transfer amount",
                field="amount",
                value=amount,
                details={"error": str(exc)},
            ) from exc

        # Amounts are forwarded verbatim, so only positional notation is accepted.
        if "e" in text.lower():
            raise ValidationError(
                "Transfer amount must be written without an exponent",
                field="amount",
                value=amount,
            )

    if not quantity.is_finite():
        raise ValidationError("Transfer amount must be finite", field="amount", value=amount)

    if quantity <= 0:
        raise ValidationError("Transfer amount must be positive", field="amount", value=amount)

    return quantity


def to_minor_units(amount: str | Decimal, decimals: int) -> int:
    """Scale a human-readable amount to integer minor units.

    Raises:
        ValidationError: If the amount is invalid or has more fractional digits
            than the asset supports
    """
    if decimals < 0:
        raise ValidationError("Decimals cannot be negative", field="decimals", value=decimals)

    quantity = parse_amount(amount)
    with localcontext() as ctx:
        ctx.prec = 78
        scaled = quantity.scaleb(decimals)
    integral = scaled.to_integral_value()
    if integral != scaled:
        raise ValidationError(
            f"Amount has more than {decimals} fractional digits",
            field="amount",
            value=str(amount),
        )
    return int(integral)


def from_minor_units(units: int, decimals: int) -> Decimal:
    """Convert integer minor units back to a Decimal."""
    return Decimal(units).scaleb(-decimals)
