"""
Typed resources returned by the AllPlayers API.

Each model is built from a decoded JSON object with ``from_api``. Keys the
model does not know about are kept in ``extra``.
"""

import datetime
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from .exceptions import BadResponseError


def _parse_date(value: Any) -> Optional[datetime.date]:
    if not value:
        return None
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value)[:10])


def _known(cls, payload: Dict[str, Any], renames: Optional[Dict[str, str]] = None):
    """Split payload into constructor kwargs and the leftover extra dict."""
    if not isinstance(payload, dict):
        raise BadResponseError(f"Cannot decode {cls.__name__} from {type(payload).__name__}", 200, payload)

    renames = renames or {}
    names = {f.name for f in fields(cls)} - {'extra'}
    kwargs, extra = {}, {}
    for key, value in payload.items():
        name = renames.get(key, key)
        if name in names:
            kwargs[name] = value
        else:
            extra[key] = value
    return kwargs, extra


def positional_list(payload: Dict[str, Any], length: int = 0) -> list:
    """
    Turn a position keyed object ({'0': a, '2': c}) back into a list.

    Keys are ordered as integers and missing positions are None; the list is
    at least ``length`` long.
    """
    try:
        positions = {int(key): value for key, value in payload.items()}
    except (TypeError, ValueError):
        raise BadResponseError("Expected an object keyed by position", 200, payload)

    size = max([length] + [position + 1 for position in positions])
    return [positions.get(position) for position in range(size)]


def decode_list(cls, payload: Optional[List[Dict[str, Any]]]) -> list:
    """Decode a JSON array (or position keyed object) into models."""
    if not payload:
        return []
    if isinstance(payload, dict):
        payload = [item for item in positional_list(payload) if item is not None]
    return [cls.from_api(item) for item in payload]


@dataclass
class User:
    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    birthdate: Optional[datetime.date] = None
    uuid: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'User':
        kwargs, extra = _known(cls, payload, {
            'firstname': 'first_name',
            'lastname': 'last_name',
            'birthday': 'birthdate',
        })
        # The API only reports gender in lowercase.
        kwargs['gender'] = 'Male' if kwargs.get('gender') == 'male' else 'Female'
        kwargs['birthdate'] = _parse_date(kwargs.get('birthdate'))
        kwargs.pop('password', None)
        return cls(**kwargs, extra=extra)


@dataclass
class Group:
    title: Optional[str] = None
    description: Optional[str] = None
    zip: Optional[str] = None
    category: Optional[str] = None
    purl: Optional[str] = None
    uuid: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'Group':
        kwargs, extra = _known(cls, payload, {'web_address': 'purl'})
        location = extra.pop('location', None)
        if isinstance(location, dict):
            kwargs.setdefault('zip', location.get('zip'))
        category = kwargs.get('category')
        if isinstance(category, list):
            kwargs['category'] = category[0] if category else None
        return cls(**kwargs, extra=extra)


@dataclass
class Installment:
    due_date: Optional[datetime.date] = None
    amount: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'Installment':
        kwargs, extra = _known(cls, payload)
        kwargs['due_date'] = _parse_date(kwargs.get('due_date'))
        return cls(**kwargs, extra=extra)


@dataclass
class Product:
    uuid: Optional[str] = None
    type: Optional[str] = None
    title: Optional[str] = None
    sku: Optional[str] = None
    group_uuid: Optional[str] = None
    status: Optional[int] = None
    total: Any = None
    initial_payment: Any = None
    installments_enabled: Any = None
    installments: List[Installment] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'Product':
        kwargs, extra = _known(cls, payload)
        kwargs['installments'] = decode_list(Installment, kwargs.get('installments'))
        return cls(**kwargs, extra=extra)


@dataclass
class LineItem:
    uuid: Optional[str] = None
    line_item_type: Optional[str] = None
    product_uuid: Optional[str] = None
    user_uuid: Optional[str] = None
    seller_uuid: Optional[str] = None
    quantity: Any = None
    originating_order_uuid: Optional[str] = None
    originating_product_uuid: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'LineItem':
        kwargs, extra = _known(cls, payload, {'type': 'line_item_type'})
        return cls(**kwargs, extra=extra)


@dataclass
class Order:
    uuid: Optional[str] = None
    order_status: Optional[str] = None
    user_uuid: Optional[str] = None
    group_uuid: Optional[str] = None
    line_items: List[LineItem] = field(default_factory=list)
    total: Any = None
    created: Optional[str] = None
    due_date: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'Order':
        kwargs, extra = _known(cls, payload, {'status': 'order_status'})
        kwargs['line_items'] = decode_list(LineItem, kwargs.get('line_items'))
        return cls(**kwargs, extra=extra)


@dataclass
class Payment:
    """Result of adding a payment to an order."""
    transaction_id: Optional[str] = None
    instructions: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'Payment':
        kwargs, extra = _known(cls, payload)
        return cls(**kwargs, extra=extra)


@dataclass
class GroupStore:
    uuid: Optional[str] = None
    title: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'GroupStore':
        kwargs, extra = _known(cls, payload)
        return cls(**kwargs, extra=extra)


@dataclass
class PaymentMethod:
    method: Optional[str] = None
    method_info: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> 'PaymentMethod':
        kwargs, extra = _known(cls, payload)
        kwargs['method_info'] = kwargs.get('method_info') or {}
        return cls(**kwargs, extra=extra)
