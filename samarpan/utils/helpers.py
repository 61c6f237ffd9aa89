"""
Helper utility functions
"""
from bson import ObjectId
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional
from datetime import datetime, date
import pytz

from samarpan.config.settings import settings

IST = pytz.timezone(settings.TIMEZONE)

PAISE = Decimal("0.01")


def serialize_doc(doc: Dict) -> Dict:
    """Convert MongoDB document to JSON-serializable format"""
    if doc is None:
        return None

    for key, value in doc.items():
        doc[key] = _serialize_value(value)
    return doc


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = pytz.utc.localize(value)
        return value.astimezone(IST).isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_serialize_value(item) for item in value]
    return value


def serialize_docs(docs: List[Dict]) -> List[Dict]:
    """Convert list of MongoDB documents to JSON-serializable format"""
    return [serialize_doc(doc) for doc in docs]


def to_money(value: Any) -> Decimal:
    """Quantize an amount to paise, rounding half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(PAISE, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percentage: Any) -> Decimal:
    return to_money(amount * Decimal(str(percentage)) / Decimal(100))


def as_utc_naive(value: Optional[Any]) -> Optional[datetime]:
    """Normalise dates for Mongo queries: stored datetimes are naive UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(pytz.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise TypeError(f"Unsupported date value: {value!r}")
