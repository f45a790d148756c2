from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from core.config.settings import ApiSettings
from core.logging import get_api_logger_safe
from core.logging.correlation import CorrelationIdManager
from core.schemas.events import TradeType
from core.trading.money import to_decimal
from core.utils.exceptions import AuthenticationError, RequestError, ValidationError

from .models import DepositResult, Profile, TradeResult


def validate_quantity(quantity: Any) -> int:
    """Return ``quantity`` as a positive int or raise ValidationError."""
    if isinstance(quantity, bool):
        raise ValidationError("Invalid quantity", field="quantity", value=quantity, expected_type="positive integer")
    if isinstance(quantity, int):
        number = Decimal(quantity)
    else:
        number = to_decimal(quantity, default=None)
    if number is None or number != number.to_integral_value() or number <= 0:
        raise ValidationError("Invalid quantity", field="quantity", value=quantity, expected_type="positive integer")
    return int(number)


def validate_amount(amount: Any) -> Decimal:
    """Return ``amount`` as a positive Decimal or raise ValidationError."""
    number = None if isinstance(amount, bool) else to_decimal(amount, default=None)
    if number is None or number <= 0:
        raise ValidationError("Enter valid amount", field="amount", value=amount, expected_type="positive number")
    return number


def validate_trade_type(trade_type: Any) -> TradeType:
    try:
        return TradeType(trade_type)
    except ValueError:
        raise ValidationError("Invalid trade type", field="type", value=trade_type, expected_type="buy|sell")


class AccountApiClient:
    """
    Request/response side of the account service: profile, trades,
    deposits and trade history.

    Local validation runs before any request is built, so rejected input
    never reaches the network.
    """

    def __init__(self, settings: ApiSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.logger = get_api_logger_safe("account_api")

    async def start(self) -> None:
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.settings.auth_token:
                headers["Authorization"] = f"Bearer {self.settings.auth_token}"
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers=headers,
                timeout=self.settings.timeout_seconds,
                transport=self._transport,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AccountApiClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def fetch_profile(self) -> Profile:
        data = await self._request("GET", "/me", operation="fetch_profile")
        return self._parse(Profile, data, "fetch_profile")

    async def submit_trade(self, trade_type: Any, instrument: str, quantity: Any) -> TradeResult:
        side = validate_trade_type(trade_type)
        qty = validate_quantity(quantity)
        if not instrument:
            raise ValidationError("Select an instrument", field="instrument", value=instrument)

        data = await self._request(
            "POST", "/trade", operation="submit_trade",
            json={"type": side.value, "ticker": instrument, "qty": qty},
        )
        return self._parse(TradeResult, data, "submit_trade")

    async def submit_deposit(self, amount: Any) -> DepositResult:
        value = validate_amount(amount)
        data = await self._request(
            "POST", "/deposit", operation="submit_deposit",
            json={"amount": float(value)},
        )
        return self._parse(DepositResult, data, "submit_deposit")

    async def fetch_trade_history(self) -> List[Any]:
        data = await self._request("GET", "/trades", operation="fetch_trade_history")
        trades = data.get("trades")
        if trades is None:
            return []
        if not isinstance(trades, list):
            raise RequestError("Trade history response has no trade list", operation="fetch_trade_history")
        return trades

    async def _request(self, method: str, path: str, operation: str,
                       json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if self._client is None:
            await self.start()

        correlation_id = CorrelationIdManager.ensure_correlation_id()
        try:
            response = await self._client.request(
                method, path, json=json, headers={"X-Request-ID": correlation_id}
            )
        except httpx.HTTPError as e:
            self.logger.warning("Account API request failed", operation=operation, error=str(e))
            raise RequestError(f"{operation} failed: {e}", operation=operation,
                               correlation_id=correlation_id) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            message = body.get("error") if isinstance(body, dict) else None
            error_cls = AuthenticationError if response.status_code in (401, 403) else RequestError
            self.logger.warning("Account API returned error",
                                operation=operation,
                                status_code=response.status_code,
                                error=message)
            raise error_cls(message or f"{operation} failed with status {response.status_code}",
                            operation=operation, status_code=response.status_code,
                            correlation_id=correlation_id)

        if not isinstance(body, dict):
            raise RequestError(f"{operation} returned a non-object body", operation=operation,
                               status_code=response.status_code, correlation_id=correlation_id)

        self.logger.debug("Account API request succeeded", operation=operation, status_code=response.status_code)
        return body

    @staticmethod
    def _parse(model, data: Dict[str, Any], operation: str):
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise RequestError(f"{operation} returned an unexpected body: {e.error_count()} errors",
                               operation=operation) from e
