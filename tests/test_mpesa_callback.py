"""
Tests for the STK push callback: payload parsing and reconciliation
against payment records through the public endpoint.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient

from ticketing.services.mpesa_callback import (
    CallbackFailure,
    CallbackMalformed,
    CallbackSuccess,
    parse_callback,
    parse_payment_id,
)

ACK = {"ResultCode": 0, "ResultDesc": "Accepted"}


def success_payload(receipt="ABC123", amount=1000):
    items = [
        {"Name": "Amount", "Value": amount},
        {"Name": "MpesaReceiptNumber", "Value": receipt},
        {"Name": "Balance"},
        {"Name": "TransactionDate", "Value": 20191219102115},
        {"Name": "PhoneNumber", "Value": 254712345678},
    ]
    if receipt is None:
        items = [item for item in items if item["Name"] != "MpesaReceiptNumber"]
    return {
        "Body": {
            "stkCallback": {
                "MerchantRequestID": "29115-34620561-1",
                "CheckoutRequestID": "ws_CO_191220191020363925",
                "ResultCode": 0,
                "ResultDesc": "The service request is processed successfully.",
                "CallbackMetadata": {"Item": items},
            }
        }
    }


def failure_payload(code=1032, desc="Request cancelled by user"):
    return {
        "Body": {
            "stkCallback": {
                "MerchantRequestID": "29115-34620561-1",
                "CheckoutRequestID": "ws_CO_191220191020363925",
                "ResultCode": code,
                "ResultDesc": desc,
            }
        }
    }


def test_parse_success():
    result = parse_callback(success_payload())
    assert isinstance(result, CallbackSuccess)
    assert result.receipt == "ABC123"
    assert result.amount == Decimal("1000")
    assert result.phone_number == "254712345678"
    assert result.checkout_request_id == "ws_CO_191220191020363925"
    assert result.transaction_date.year == 2019
    assert result.transaction_date.hour == 10


def test_parse_success_without_receipt():
    result = parse_callback(success_payload(receipt=None))
    assert isinstance(result, CallbackSuccess)
    assert result.receipt is None


def test_parse_failure():
    result = parse_callback(failure_payload())
    assert isinstance(result, CallbackFailure)
    assert result.code == 1032
    assert result.description == "Request cancelled by user"


@pytest.mark.parametrize(
    "payload",
    [None, [], "text", {}, {"Body": {}}, {"Body": {"stkCallback": {"ResultDesc": "no code"}}}],
)
def test_parse_malformed(payload):
    assert isinstance(parse_callback(payload), CallbackMalformed)


@pytest.mark.parametrize("raw,expected", [("12", 12), (" 7 ", 7), ("abc", None), ("", None), (None, None), ("-1", None)])
def test_parse_payment_id(raw, expected):
    assert parse_payment_id(raw) == expected


async def _post_callback(client: AsyncClient, payment_id, payload):
    params = {} if payment_id is None else {"payment_id": str(payment_id)}
    return await client.post("/api/mpesa/callback", params=params, json=payload)


async def _payment(client: AsyncClient, headers: dict, payment_id: int) -> dict:
    response = await client.get(f"/payments/{payment_id}", headers=headers)
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_success_callback_completes_payment(client: AsyncClient, auth_headers, pending_payment):
    response = await _post_callback(client, pending_payment.payment_id, success_payload())
    assert response.status_code == 200
    assert response.json() == ACK

    payment = await _payment(client, auth_headers, pending_payment.payment_id)
    assert payment["payment_status"] == "Completed"
    assert payment["transaction_id"] == "ABC123"


@pytest.mark.asyncio
async def test_duplicate_success_callback_is_idempotent(client: AsyncClient, auth_headers, pending_payment):
    await _post_callback(client, pending_payment.payment_id, success_payload())
    first = await _payment(client, auth_headers, pending_payment.payment_id)

    response = await _post_callback(client, pending_payment.payment_id, success_payload())
    assert response.json() == ACK
    second = await _payment(client, auth_headers, pending_payment.payment_id)

    assert second["payment_status"] == first["payment_status"] == "Completed"
    assert second["transaction_id"] == first["transaction_id"] == "ABC123"
    assert second["payment_date"] == first["payment_date"]


@pytest.mark.asyncio
async def test_failure_callback_marks_payment_failed(client: AsyncClient, auth_headers, pending_payment):
    response = await _post_callback(client, pending_payment.payment_id, failure_payload())
    assert response.json() == ACK

    payment = await _payment(client, auth_headers, pending_payment.payment_id)
    assert payment["payment_status"] == "Failed"


@pytest.mark.asyncio
async def test_failure_after_completion_is_ignored(client: AsyncClient, auth_headers, pending_payment):
    await _post_callback(client, pending_payment.payment_id, success_payload())

    response = await _post_callback(client, pending_payment.payment_id, failure_payload())
    assert response.json() == ACK

    payment = await _payment(client, auth_headers, pending_payment.payment_id)
    assert payment["payment_status"] == "Completed"
    assert payment["transaction_id"] == "ABC123"


@pytest.mark.asyncio
async def test_success_without_receipt_leaves_payment_unchanged(
    client: AsyncClient, auth_headers, pending_payment
):
    response = await _post_callback(client, pending_payment.payment_id, success_payload(receipt=None))
    assert response.status_code == 200
    assert response.json() == ACK

    payment = await _payment(client, auth_headers, pending_payment.payment_id)
    assert payment["payment_status"] == "Pending"
    assert payment["transaction_id"] is None


@pytest.mark.asyncio
async def test_callback_for_unknown_payment_is_acknowledged(client: AsyncClient):
    response = await _post_callback(client, 99999, success_payload())
    assert response.status_code == 200
    assert response.json() == ACK


@pytest.mark.asyncio
@pytest.mark.parametrize("payment_id", [None, "abc"])
async def test_callback_with_bad_payment_id_is_acknowledged(client: AsyncClient, payment_id):
    response = await _post_callback(client, payment_id, success_payload())
    assert response.status_code == 200
    assert response.json() == ACK


@pytest.mark.asyncio
async def test_callback_with_invalid_json_is_acknowledged(client: AsyncClient, auth_headers, pending_payment):
    response = await client.post(
        "/api/mpesa/callback",
        params={"payment_id": str(pending_payment.payment_id)},
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 200
    assert response.json() == ACK

    payment = await _payment(client, auth_headers, pending_payment.payment_id)
    assert payment["payment_status"] == "Pending"


@pytest.mark.asyncio
async def test_callback_with_unexpected_shape_is_acknowledged(client: AsyncClient, pending_payment):
    response = await _post_callback(client, pending_payment.payment_id, {"hello": "world"})
    assert response.status_code == 200
    assert response.json() == ACK
