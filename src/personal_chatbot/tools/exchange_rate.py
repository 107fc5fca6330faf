"""Tool looking up currency exchange rates from ExchangeRate-API."""

from email.utils import parsedate_to_datetime
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from personal_chatbot.tools.base import SimpleTool
from personal_chatbot.tools.types import ToolDescriptor, ToolError, ToolParameter, ToolResponse

exchange_rate_descriptor = ToolDescriptor(
    name="exchange_rate",
    description=(
        "Gets current exchange rates. "
        "Several target currencies can be looked up from one base currency at once."
    ),
    parameters=[
        ToolParameter(
            name="base_code",
            type="string",
            description="ISO 4217 code of the currency to convert from.",
        ),
        ToolParameter(
            name="target_codes",
            type="array",
            description="ISO 4217 codes of the currencies to convert to.",
            json_schema={
                "type": "array",
                "description": "ISO 4217 codes of the currencies to convert to.",
                "items": {"type": "string", "description": "Currency code"},
            },
        ),
    ],
)


class ExchangeRateArguments(BaseModel):
    base_code: str
    target_codes: list[str]


class ExchangeRateTool(SimpleTool):
    """Reports rates from ``base_code`` to each known target currency."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = "https://v6.exchangerate-api.com",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token_endpoint = f"{endpoint.rstrip('/')}/v6/{api_key}"
        self.timeout = timeout
        self._transport = transport

    def describe(self) -> ToolDescriptor:
        return exchange_rate_descriptor

    async def call(self, id: str, arguments: Any) -> ToolResponse:
        """Fetch the latest rates for the base currency.

        Unknown target codes are left out of ``target_rates``.

        Raises:
            ToolError: If the API cannot be reached or answers unexpectedly.
        """
        try:
            parsed = ExchangeRateArguments.model_validate(arguments or {})
        except ValidationError as e:
            return ToolResponse(result={"status": "invalid_request", "reason": str(e)})

        base_code = parsed.base_code.strip().upper()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(f"{self.token_endpoint}/latest/{base_code}")
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            # Drop the URL from the message; it carries the API key
            raise ToolError(f"Exchange rate request failed: {type(e).__name__}") from e
        except ValueError as e:
            raise ToolError(f"Exchange rate response is not valid JSON: {e}") from e

        try:
            updated_at = parsedate_to_datetime(body["time_last_update_utc"])
            rates: dict[str, float] = body["conversion_rates"]
            result_base = body["base_code"]
        except (KeyError, TypeError, ValueError) as e:
            raise ToolError(f"Unexpected exchange rate response: {e}") from e

        codes = [code.strip().upper() for code in parsed.target_codes]
        target_rates = {code: rates[code] for code in codes if code in rates}
        return ToolResponse(
            result={
                "updated_at": updated_at.isoformat(),
                "base_code": result_base,
                "target_rates": target_rates,
            }
        )
