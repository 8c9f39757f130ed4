"""
M-Pesa Daraja STK push client.

Two sequential calls per initiation: an OAuth token (cached until shortly
before Daraja expires it) and the STK push request itself. Both share one
httpx client with the configured timeout. Any transport failure, timeout,
non-2xx status or non-"0" ResponseCode becomes a GatewayError; nothing is
retried here. The caller decides whether to initiate again.

An accepted push only means the prompt was sent to the phone. The outcome
arrives later on the callback URL, which carries ?payment_id=<id> so the
notification can be matched to the payment record.
"""

import base64
import re
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_CEILING, InvalidOperation
from typing import Any, Optional

import httpx

from ticketing.core.config import Settings, get_settings
from ticketing.core.exceptions import GatewayError, ValidationError
from ticketing.core.logging import get_logger
from ticketing.core.metrics import record_stk_push, stk_push_latency

logger = get_logger(__name__)

PHONE_PATTERN = re.compile(r"^2547\d{8}$")

# Daraja timestamps are Nairobi local time
EAT = timezone(timedelta(hours=3))

TOKEN_PATH = "/oauth/v1/generate"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"


def normalize_phone_number(phone_number: str) -> str:
    """Rewrite 07XXXXXXXX, +2547XXXXXXXX and 7XXXXXXXX into 2547XXXXXXXX."""
    phone = re.sub(r"[\s\-()]", "", str(phone_number))
    if phone.startswith("+"):
        phone = phone[1:]
    if phone.startswith("0"):
        phone = "254" + phone[1:]
    elif phone.startswith("7") and len(phone) == 9:
        phone = "254" + phone
    return phone


def validate_phone_number(phone_number: str) -> str:
    phone = normalize_phone_number(phone_number)
    if not PHONE_PATTERN.match(phone):
        raise ValidationError("Invalid phone number format")
    return phone


def whole_shillings(amount: Any) -> int:
    """STK push only accepts whole shillings; round fractional amounts up."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError("Invalid amount")
    if not value.is_finite() or value < 1:
        raise ValidationError("Amount must be at least 1")
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def generate_password(shortcode: str, passkey: str, now: Optional[datetime] = None) -> tuple[str, str]:
    """Return (password, timestamp) as Daraja expects them."""
    timestamp = (now or datetime.now(EAT)).strftime("%Y%m%d%H%M%S")
    raw = f"{shortcode}{passkey}{timestamp}".encode("utf-8")
    return base64.b64encode(raw).decode("ascii"), timestamp


def build_callback_url(base_url: str, payment_id: int) -> str:
    return str(httpx.URL(base_url).copy_merge_params({"payment_id": str(payment_id)}))


class MpesaGateway:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.mpesa_base_url,
            timeout=self.settings.MPESA_TIMEOUT_SECONDS,
            transport=self._transport,
        )

    def invalidate_token(self) -> None:
        self._access_token = None
        self._token_expires_at = 0.0

    async def get_access_token(self, client: httpx.AsyncClient) -> str:
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        response = await client.get(
            TOKEN_PATH,
            params={"grant_type": "client_credentials"},
            auth=(self.settings.MPESA_CONSUMER_KEY, self.settings.MPESA_CONSUMER_SECRET),
        )
        response.raise_for_status()
        data = response.json()
        if not data.get("access_token"):
            raise GatewayError("M-Pesa token response had no access_token")

        expires_in = int(data.get("expires_in", 3599))
        self._access_token = data["access_token"]
        self._token_expires_at = (
            time.monotonic() + expires_in - self.settings.MPESA_TOKEN_REFRESH_MARGIN
        )
        logger.info("mpesa_token_refreshed", expires_in=expires_in)
        return self._access_token

    def build_stk_payload(self, phone: str, amount: int, payment_id: int) -> dict[str, Any]:
        settings = self.settings
        password, timestamp = generate_password(settings.MPESA_SHORTCODE, settings.MPESA_PASSKEY)
        return {
            "BusinessShortCode": settings.MPESA_SHORTCODE,
            "Password": password,
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            "Amount": amount,
            "PartyA": phone,
            "PartyB": settings.MPESA_SHORTCODE,
            "PhoneNumber": phone,
            "CallBackURL": build_callback_url(settings.MPESA_CALLBACK_URL, payment_id),
            "AccountReference": settings.MPESA_ACCOUNT_REFERENCE,
            "TransactionDesc": settings.MPESA_TRANSACTION_DESC,
        }

    async def initiate_stk_push(self, phone_number: str, amount: Any, payment_id: int) -> dict[str, Any]:
        """
        Send an STK push prompt and return Daraja's acceptance payload.

        Raises ValidationError for a malformed phone number or amount and
        GatewayError when Daraja cannot be reached or rejects the request.
        """
        phone = validate_phone_number(phone_number)
        shillings = whole_shillings(amount)

        start = time.perf_counter()
        try:
            async with self._client() as client:
                token = await self.get_access_token(client)
                response = await client.post(
                    STK_PUSH_PATH,
                    json=self.build_stk_payload(phone, shillings, payment_id),
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.TimeoutException:
            record_stk_push("error")
            logger.error("stk_push_timeout", payment_id=payment_id)
            raise GatewayError("M-Pesa request timed out")
        except httpx.HTTPError as e:
            record_stk_push("error")
            logger.error("stk_push_transport_error", payment_id=payment_id, error=str(e))
            raise GatewayError(f"M-Pesa request failed: {e}")
        except ValueError:
            record_stk_push("error")
            logger.error("mpesa_token_response_invalid", payment_id=payment_id)
            raise GatewayError("M-Pesa token response was not JSON")
        finally:
            stk_push_latency.observe(time.perf_counter() - start)

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code == 401:
            # Token revoked early; the next initiation fetches a fresh one
            self.invalidate_token()

        if response.is_error or str(data.get("ResponseCode")) != "0":
            description = (
                data.get("errorMessage")
                or data.get("ResponseDescription")
                or f"HTTP {response.status_code}"
            )
            record_stk_push("rejected")
            logger.error(
                "stk_push_rejected",
                payment_id=payment_id,
                status_code=response.status_code,
                description=description,
            )
            raise GatewayError(description)

        record_stk_push("accepted")
        logger.info(
            "stk_push_accepted",
            payment_id=payment_id,
            checkout_request_id=data.get("CheckoutRequestID"),
        )
        return data


_gateway: Optional[MpesaGateway] = None


def get_mpesa_gateway() -> MpesaGateway:
    global _gateway
    if _gateway is None:
        _gateway = MpesaGateway()
    return _gateway
