"""
Pydantic models for receipt records and parse diagnostics.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import Any, List, Literal, Optional

from ocr_enhancer.services.normalizer import apply_field_specs


class ProductLine(BaseModel):
    """One purchased item."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    description: Optional[str] = None
    code: Optional[str] = None
    quantity: Optional[int] = None
    price: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def coerce_fields(cls, data: Any) -> Any:
        return apply_field_specs(data)


class ReceiptRecord(BaseModel):
    """Structured receipt restated by the language model."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    image_quality: Optional[str] = None
    store_name: Optional[str] = None
    store_phone: Optional[str] = None
    store_address: Optional[str] = None
    purchase_date: Optional[str] = None  # mm/dd/yyyy
    purchase_time: Optional[str] = None  # H:MM AM/PM
    total_paid: Optional[str] = None
    products: List[ProductLine] = Field(default_factory=list)

    @model_validator(mode='before')
    @classmethod
    def coerce_fields(cls, data: Any) -> Any:
        data = apply_field_specs(data)
        if isinstance(data, dict) and data.get('products', []) is None:
            data['products'] = []
        return data


class ParseDiagnostic(BaseModel):
    """Terminal pipeline failure, kept with enough text to replay offline."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    error: Literal['extraction_error', 'decode_error']
    message: str
    raw_text: str
    cleaned_json_string: Optional[str] = None
