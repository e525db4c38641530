from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from services.errors import ValidationError


CENT = Decimal("0.01")
MILLI = Decimal("0.001")


def _to_decimal(val, field: str) -> Decimal:
    if isinstance(val, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(val, Decimal):
        d = val
    else:
        s = str(val).strip().replace(",", ".") if val is not None else ""
        if not s:
            raise ValidationError(f"{field} is required")
        try:
            d = Decimal(s)
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} must be a number") from None
    if not d.is_finite():
        raise ValidationError(f"{field} must be a number")
    return d


def to_money(val, field: str = "amount", *, allow_negative: bool = False, allow_zero: bool = True) -> Decimal:
    """Parse a money amount ("1500", "1500.5", "1500,5") into Decimal(.01)."""
    d = _to_decimal(val, field)
    if d < 0 and not allow_negative:
        raise ValidationError(f"{field} cannot be negative")
    if d == 0 and not allow_zero:
        raise ValidationError(f"{field} must be greater than 0")
    return d.quantize(CENT)


def to_qty(val, field: str = "quantity") -> Decimal:
    """Quantities (units or weight) are strictly positive, Decimal(.001)."""
    d = _to_decimal(val, field)
    if d <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    return d.quantize(MILLI)


def optional_money(val, field: str, default: Decimal = Decimal("0")) -> Decimal:
    if val is None or (isinstance(val, str) and not val.strip()):
        return default.quantize(CENT)
    return to_money(val, field)


def as_money(val) -> Decimal:
    """Read a stored Numeric column value back as Decimal(.01)."""
    if val is None:
        return Decimal("0.00")
    return Decimal(str(val)).quantize(CENT)


def parse_date(val, field: str = "date", default: date | None = None) -> date | None:
    if val is None or (isinstance(val, str) and not val.strip()):
        return default
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    try:
        return datetime.strptime(str(val).strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"{field} must be a YYYY-MM-DD date") from None


def parse_hhmm(val, field: str) -> str:
    try:
        t = datetime.strptime(str(val or "").strip(), "%H:%M")
    except ValueError:
        raise ValidationError(f"{field} must be a HH:MM time") from None
    return t.strftime("%H:%M")


def minute_of_day(hhmm: str) -> int:
    h, m = hhmm.split(":")
    return int(h) * 60 + int(m)


def to_id(val, field: str) -> int:
    try:
        i = int(str(val).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field} is required") from None
    if i <= 0:
        raise ValidationError(f"{field} is invalid")
    return i


def clean_str(val, field: str | None = None, *, max_len: int = 255) -> str | None:
    """Trimmed string or None. With ``field`` the value is required."""
    s = str(val).strip() if val is not None else ""
    if not s:
        if field:
            raise ValidationError(f"{field} is required")
        return None
    return s[:max_len]


def one_of(val, allowed: set, field: str, default: str | None = None) -> str:
    s = (str(val).strip().lower() if val is not None else "") or default
    if s not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(allowed))}")
    return s


def to_rate(val, field: str, *, places: Decimal = Decimal("0.0001"), max_value: Decimal | None = None) -> Decimal:
    """Non-negative rate or factor; blank means 0."""
    if val is None or (isinstance(val, str) and not val.strip()):
        return Decimal("0").quantize(places)
    d = _to_decimal(val, field)
    if d < 0:
        raise ValidationError(f"{field} cannot be negative")
    if max_value is not None and d > max_value:
        raise ValidationError(f"{field} cannot exceed {max_value}")
    return d.quantize(places)
