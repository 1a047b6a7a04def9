import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

from paginate_helper.core.errors import InvalidFilterValue


def _bad_filter_value(column_key: str, kind: str, value=None) -> InvalidFilterValue:
    return InvalidFilterValue(
        f'Некорректное значение фильтра для поля "{column_key}" ({kind})',
        field=column_key,
        value=value,
    )


def _coerce_bool_filter_value(column_key: str, value):
    if isinstance(value, bool):
        return value
    text = str(value or "").strip().lower()
    if text in {"1", "true", "yes", "y", "да"}:
        return True
    if text in {"0", "false", "no", "n", "нет"}:
        return False
    raise _bad_filter_value(column_key, "boolean", value)


def _coerce_number_filter_value(column_key: str, value, python_type):
    if isinstance(value, bool):
        raise _bad_filter_value(column_key, "number", value)
    if python_type in {int, float} and isinstance(value, (int, float)):
        if python_type is int and isinstance(value, float) and not value.is_integer():
            raise _bad_filter_value(column_key, "number", value)
        return python_type(value)
    if python_type is Decimal and isinstance(value, (Decimal, int)):
        return Decimal(value)
    text = str(value).strip()
    if not text:
        raise _bad_filter_value(column_key, "number", value)
    normalized = text.replace(",", ".")
    try:
        if python_type is int:
            return int(normalized)
        if python_type is float:
            return float(normalized)
        if python_type is Decimal:
            return Decimal(normalized)
        return python_type(normalized)
    except (ValueError, TypeError, InvalidOperation):
        raise _bad_filter_value(column_key, "number", value)


def _coerce_date_filter_value(column_key: str, value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        raise _bad_filter_value(column_key, "date", value)
    try:
        # Either YYYY-MM-DD or a full ISO datetime, date part only.
        if "T" in text or " " in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    except ValueError:
        raise _bad_filter_value(column_key, "date", value)


def _coerce_datetime_filter_value(column_key: str, value, *, aware: bool):
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, datetime.min.time())
    else:
        text = str(value or "").strip()
        if not text:
            raise _bad_filter_value(column_key, "datetime", value)
        try:
            if is_date_only_literal(text):
                # Date-only value for a timestamp column means start of the day.
                parsed = datetime.combine(date.fromisoformat(text), datetime.min.time())
            else:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise _bad_filter_value(column_key, "datetime", value)
    if aware and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    if not aware and parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def column_python_type(column):
    try:
        return column.property.columns[0].type.python_type
    except Exception:
        return None


def _column_is_timezone_aware(column) -> bool:
    try:
        return bool(column.property.columns[0].type.timezone)
    except Exception:
        return False


def coerce_filter_value(column, value):
    """Convert a raw filter value to the Python type of ``column``."""
    python_type = column_python_type(column)
    if python_type is None:
        return value
    if python_type is uuid.UUID:
        if isinstance(value, uuid.UUID):
            return value
        try:
            return uuid.UUID(str(value or "").strip())
        except ValueError:
            raise _bad_filter_value(column.key, "uuid", value)
    if python_type is bool:
        return _coerce_bool_filter_value(column.key, value)
    if python_type in {int, float, Decimal}:
        return _coerce_number_filter_value(column.key, value, python_type)
    if python_type is datetime:
        return _coerce_datetime_filter_value(column.key, value, aware=_column_is_timezone_aware(column))
    if python_type is date:
        return _coerce_date_filter_value(column.key, value)
    if python_type is str and isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return str(value)
    return value


def is_date_only_literal(raw_value) -> bool:
    if isinstance(raw_value, date) and not isinstance(raw_value, datetime):
        return True
    if not isinstance(raw_value, str):
        return False
    text = raw_value.strip()
    if not text or "T" in text or " " in text:
        return False
    try:
        date.fromisoformat(text)
        return True
    except ValueError:
        return False
