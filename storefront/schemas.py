"""Request payload models.

Every JSON body and query string accepted by the HTTP API is parsed through
one of these models; :func:`parse` turns pydantic's errors into a
:class:`~storefront.errors.ValidationError` carrying a readable message.
"""
from typing import Any, Dict, Literal, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

MAX_CATALOG_LIMIT = 50

SortKey = Literal['newest', 'oldest', 'price-low', 'price-high', 'rating']
Role = Literal['user', 'developer', 'admin']

M = TypeVar('M', bound=BaseModel)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class RegisterRequest(_Payload):
    email: str = Field(min_length=3, max_length=255, pattern=r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
    name: str = Field(min_length=2, max_length=255)
    password: str = Field(min_length=6)


class LoginRequest(_Payload):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class ProfileUpdate(_Payload):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)


class AppCreate(_Payload):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=10)
    category: str = Field(min_length=1, max_length=100)
    price: float = Field(ge=0)


class AppUpdate(_Payload):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=10)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    price: Optional[float] = Field(default=None, ge=0)


class VersionCreate(_Payload):
    version: str = Field(min_length=1, max_length=50)
    file_url: str = Field(alias='fileUrl', min_length=1, max_length=1000)
    changelog: str = ''
    size: int = Field(default=0, ge=0)
    checksum: str = Field(default='', max_length=128)


class ScreenshotCreate(_Payload):
    file_url: str = Field(alias='fileUrl', min_length=1, max_length=1000)
    order_index: Optional[int] = Field(default=None, alias='orderIndex', ge=0)


class PaymentIntentRequest(_Payload):
    # Any client-supplied amount is ignored: only the app id is read.
    app_id: int = Field(alias='appId')


class ConfirmPurchaseRequest(_Payload):
    payment_intent_id: str = Field(alias='paymentIntentId', min_length=1)


class ReviewCreate(_Payload):
    app_id: int = Field(alias='appId')
    rating: int = Field(ge=1, le=5)
    text: str = Field(min_length=10, max_length=500)


class ReviewUpdate(_Payload):
    rating: int = Field(ge=1, le=5)
    text: str = Field(min_length=10, max_length=500)


class StatusUpdate(_Payload):
    status: str = Field(min_length=1)


class RoleUpdate(_Payload):
    role: Role


class CatalogQuery(_Payload):
    query: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[float] = Field(default=None, alias='minPrice', ge=0)
    max_price: Optional[float] = Field(default=None, alias='maxPrice', ge=0)
    sort_by: SortKey = Field(default='newest', alias='sortBy')
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=12, ge=1)

    @field_validator('limit')
    @classmethod
    def _cap_limit(cls, value: int) -> int:
        return min(value, MAX_CATALOG_LIMIT)

    @field_validator('query', 'category')
    @classmethod
    def _blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = '.'.join(str(p) for p in err.get('loc', ())) or 'body'
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return '; '.join(parts)


def parse(model: Type[M], data: Optional[Mapping[str, Any]]) -> M:
    """Validate *data* against *model*, raising :class:`ValidationError`."""
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValidationError('Request body must be a JSON object')
    try:
        return model.model_validate(dict(data))
    except PydanticValidationError as exc:
        raise ValidationError(_describe(exc)) from exc


def page_params(args: Mapping[str, Any], default_limit: int, max_limit: int) -> Dict[str, int]:
    """Parse lenient ``page``/``limit`` query parameters with a hard cap."""
    def _int(name: str, default: int) -> int:
        try:
            value = int(args.get(name, default))
        except (TypeError, ValueError):
            return default
        return value if value > 0 else default

    return {
        'page': _int('page', 1),
        'limit': min(_int('limit', default_limit), max_limit),
    }
