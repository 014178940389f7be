"""Stripe-backed payment gateway client.

Customer creation, charge creation and customer deletion. The API key is
passed on every request instead of being set on the `stripe` module, so
several clients with different credentials can live in one process.
"""

import asyncio
from typing import Any

import stripe

from chargefn.common.errors import ClassifiedError
from chargefn.common.logging import logger


class GatewayError(ClassifiedError):
    """Provider failure translated out of the `stripe` exception hierarchy."""

    def __init__(
        self,
        message: str,
        error_type: str | None = None,
        code: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, error_type=error_type, code=code)
        self.original_error = original_error


def _translate(exc: stripe.StripeError) -> GatewayError:
    """Keep the provider's classification only when it sent a typed error body."""

    error_type = getattr(exc.error, "type", None) if exc.error is not None else None
    message = exc.user_message or str(exc)
    return GatewayError(message, error_type=error_type, code=exc.code, original_error=exc)


class PaymentGateway:
    """Synchronous `stripe` SDK calls, run off the event loop."""

    def __init__(self, api_key: str, stripe_version: str | None = None) -> None:
        self.api_key = api_key
        self.stripe_version = stripe_version

    def _options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"api_key": self.api_key}
        if self.stripe_version:
            options["stripe_version"] = self.stripe_version
        return options

    async def _call(self, operation: str, func, *args, **kwargs):
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except stripe.StripeError as exc:
            error = _translate(exc)
            logger.warning(
                "gateway_error operation=%s error_type=%s code=%s",
                operation,
                error.error_type,
                error.code,
            )
            raise error from exc

    async def create_customer(self, email: str) -> str:
        customer = await self._call("create_customer", stripe.Customer.create, email=email, **self._options())
        return customer.id

    async def create_charge(
        self,
        amount: int,
        currency: str,
        customer_id: str | None,
        idempotency_key: str,
    ) -> dict[str, Any]:
        """Submit one charge; the idempotency key collapses re-submissions.

        Returns the provider's full JSON response body.
        """

        charge = await self._call(
            "create_charge",
            stripe.Charge.create,
            amount=amount,
            currency=currency,
            customer=customer_id,
            idempotency_key=idempotency_key,
            **self._options(),
        )
        return charge.last_response.data

    async def delete_customer(self, customer_id: str) -> None:
        await self._call("delete_customer", stripe.Customer.delete, customer_id, **self._options())
