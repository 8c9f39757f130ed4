"""
Parser for the STK push result callback.

Daraja posts:

    {"Body": {"stkCallback": {
        "MerchantRequestID": "...", "CheckoutRequestID": "...",
        "ResultCode": 0, "ResultDesc": "...",
        "CallbackMetadata": {"Item": [{"Name": "MpesaReceiptNumber", "Value": "..."}, ...]}
    }}}

All defensive handling of that payload lives here. The rest of the code only
sees CallbackSuccess, CallbackFailure or CallbackMalformed.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from ticketing.services.mpesa_gateway import EAT


class MetadataItem(BaseModel):
    Name: str
    Value: Any = None


class MetadataBlock(BaseModel):
    Item: list[MetadataItem] = []


class StkCallback(BaseModel):
    MerchantRequestID: Optional[str] = None
    CheckoutRequestID: Optional[str] = None
    ResultCode: int
    ResultDesc: Optional[str] = None
    CallbackMetadata: Optional[MetadataBlock] = None


class CallbackBody(BaseModel):
    stkCallback: StkCallback


class CallbackEnvelope(BaseModel):
    Body: CallbackBody


@dataclass(frozen=True)
class CallbackSuccess:
    receipt: Optional[str]
    amount: Optional[Decimal]
    transaction_date: Optional[datetime]
    phone_number: Optional[str]
    checkout_request_id: Optional[str] = None


@dataclass(frozen=True)
class CallbackFailure:
    code: int
    description: str
    checkout_request_id: Optional[str] = None


@dataclass(frozen=True)
class CallbackMalformed:
    reason: str


CallbackResult = Union[CallbackSuccess, CallbackFailure, CallbackMalformed]


def parse_payment_id(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    raw = raw.strip()
    if not raw.isdigit():
        return None
    return int(raw)


def _item_value(items: list[MetadataItem], name: str) -> Any:
    for item in items:
        if item.Name == name:
            return item.Value
    return None


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _as_datetime(value: Any) -> Optional[datetime]:
    # TransactionDate is a number like 20191219102115, Nairobi time
    if value is None:
        return None
    try:
        return datetime.strptime(str(value), "%Y%m%d%H%M%S").replace(tzinfo=EAT)
    except ValueError:
        return None


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_callback(payload: Any) -> CallbackResult:
    if not isinstance(payload, dict):
        return CallbackMalformed("payload is not a JSON object")

    try:
        envelope = CallbackEnvelope.model_validate(payload)
    except PydanticValidationError as e:
        return CallbackMalformed(f"unexpected callback structure: {e.error_count()} error(s)")

    callback = envelope.Body.stkCallback

    if callback.ResultCode != 0:
        return CallbackFailure(
            code=callback.ResultCode,
            description=callback.ResultDesc or "",
            checkout_request_id=callback.CheckoutRequestID,
        )

    items = callback.CallbackMetadata.Item if callback.CallbackMetadata else []
    return CallbackSuccess(
        receipt=_as_text(_item_value(items, "MpesaReceiptNumber")),
        amount=_as_decimal(_item_value(items, "Amount")),
        transaction_date=_as_datetime(_item_value(items, "TransactionDate")),
        phone_number=_as_text(_item_value(items, "PhoneNumber")),
        checkout_request_id=callback.CheckoutRequestID,
    )
