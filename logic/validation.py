"""Pydantic schemas and helpers for validating HTTP bodies and remote payloads."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.ingestion_mapping import parse_purchase_date
from models.taxonomy import validate_catalog_category


class ScanRequest(BaseModel):
    """Input contract for a mail scan."""

    user_id: str = Field(min_length=1)
    max_results: int = Field(default=50, ge=1)


class ItemSubmission(BaseModel):
    """A closet item submitted by URL, photo or manual entry.

    Every field is optional; whatever the caller supplies is never
    overwritten by extraction.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    url: Optional[str] = None
    uploaded_image: Optional[str] = None
    title: Optional[str] = None
    brand_name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    category: Optional[str] = None
    purchase_date: Optional[str] = None

    @field_validator("category")
    @classmethod
    def _validate_category(cls, category: Optional[str]) -> Optional[str]:
        if not category:
            return None
        return validate_catalog_category(category)

    @field_validator("purchase_date")
    @classmethod
    def _validate_purchase_date(cls, purchase_date: Optional[str]) -> Optional[str]:
        if not purchase_date:
            return None
        return parse_purchase_date(purchase_date).isoformat()

    @field_validator("price", mode="before")
    @classmethod
    def _price_as_text(cls, price: Any) -> Any:
        if isinstance(price, (int, float)):
            return str(price)
        return price

    def provided_fields(self) -> Dict[str, Any]:
        """Fields the caller actually set, blanks dropped."""

        return {
            key: value
            for key, value in self.model_dump(exclude={"uploaded_image"}).items()
            if value not in (None, "")
        }


class ConnectRequest(BaseModel):
    """OAuth authorization code returned by the mail provider consent screen."""

    code: str = Field(min_length=1)
    account_address: Optional[str] = None


class SuppressBrandRequest(BaseModel):
    brand_name: str = Field(min_length=1)

    @field_validator("brand_name")
    @classmethod
    def _strip(cls, brand_name: str) -> str:
        cleaned = brand_name.strip()
        if not cleaned:
            raise ValueError("brand_name cannot be blank")
        return cleaned


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    error: str
    details: Any = None


def error_payload(error: str, details: Any = None) -> Dict[str, Any]:
    return ErrorResponse(error=error, details=details).model_dump()


def validation_failure(message: str, errors: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Translate Pydantic error dicts into a consistent error payload."""

    details: List[Dict[str, Any]] = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in errors
    ]
    return error_payload(message, details)


__all__ = [
    "ConnectRequest",
    "ErrorResponse",
    "ItemSubmission",
    "ScanRequest",
    "SuppressBrandRequest",
    "error_payload",
    "validation_failure",
]
