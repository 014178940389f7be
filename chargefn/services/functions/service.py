"""Event handlers wiring the identity/database platform to the payment gateway.

Each handler runs once per delivered event, performs a short sequential chain
of external calls, and keeps no state between invocations.
"""

from chargefn.common.error_reporting import ErrorReporter
from chargefn.common.errors import user_facing_message
from chargefn.common.events import (
    ChargeWrittenEvent,
    InvalidChargeRecord,
    PendingCharge,
    UserCreatedEvent,
    UserDeletedEvent,
    parse_charge_record,
)
from chargefn.common.gateway import GatewayError, PaymentGateway
from chargefn.common.logging import logger
from chargefn.common.metrics import (
    charges_failed_total,
    charges_succeeded_total,
    duplicate_events_skipped_total,
    errors_reported_total,
)
from chargefn.common.store import ChargeRecordStore, CustomerDirectory


class ChargeFunctionsService:
    """Customer provisioning, charge creation and customer cleanup."""

    def __init__(
        self,
        directory: CustomerDirectory,
        charges: ChargeRecordStore,
        gateway: PaymentGateway,
        reporter: ErrorReporter,
        currency: str = "USD",
        service_name: str = "charge-functions",
    ) -> None:
        self.directory = directory
        self.charges = charges
        self.gateway = gateway
        self.reporter = reporter
        self.currency = currency
        self.service_name = service_name

    async def create_charge(self, event: ChargeWrittenEvent) -> None:
        """Submit a charge for a newly written request, at most once.

        Records that are deleted or already carry a provider response or an
        error are left untouched. Gateway failures end up in the record's
        `error` field and in the error log; the invocation still succeeds
        unless one of those two writes fails.
        """

        user_id, charge_id = event.user_id, event.charge_id
        try:
            record = parse_charge_record(event.data)
        except InvalidChargeRecord as exc:
            await self._record_failure(user_id, charge_id, exc)
            return

        if not isinstance(record, PendingCharge):
            reason = "deleted" if record is None else type(record).__name__
            logger.info("charge write skipped charge_id=%s reason=%s", charge_id, reason)
            duplicate_events_skipped_total.labels(service=self.service_name, reason=reason).inc()
            return

        try:
            customer_id = await self.directory.get(user_id)
            response = await self.gateway.create_charge(
                amount=record.amount,
                currency=self.currency,
                customer_id=customer_id,
                idempotency_key=charge_id,
            )
        except Exception as exc:
            await self._record_failure(user_id, charge_id, exc)
            return

        await self.charges.write_result(user_id, charge_id, {**event.data, **response})
        charges_succeeded_total.labels(service=self.service_name).inc()
        logger.info("charge created charge_id=%s provider_id=%s", charge_id, response.get("id"))

    async def _record_failure(self, user_id: str, charge_id: str, exc: Exception) -> None:
        """Store the user-facing message, then report full detail."""

        message = user_facing_message(exc)
        error_type = getattr(exc, "error_type", None) or "unclassified"
        logger.error("charge failed charge_id=%s error_type=%s error=%s", charge_id, error_type, exc)
        charges_failed_total.labels(service=self.service_name, error_type=error_type).inc()
        await self.charges.write_error(user_id, charge_id, message)
        await self.reporter.report(exc, {"user": user_id})
        errors_reported_total.labels(service=self.service_name).inc()

    async def create_customer(self, event: UserCreatedEvent) -> str:
        """Create the payment customer for a new account and remember its id."""

        customer_id = await self.gateway.create_customer(event.email)
        await self.directory.set(event.uid, customer_id)
        logger.info("customer provisioned customer_id=%s", customer_id)
        return customer_id

    async def cleanup_user(self, event: UserDeletedEvent) -> None:
        """Delete the payment customer, then drop the directory entry.

        A missing directory entry means the account was already cleaned up
        (or never provisioned) and nothing is done. A customer the gateway no
        longer knows is treated as already deleted.
        """

        customer_id = await self.directory.get(event.uid)
        if customer_id is None:
            logger.info("cleanup skipped, no customer on record")
            return
        try:
            await self.gateway.delete_customer(customer_id)
        except GatewayError as exc:
            if exc.code != "resource_missing":
                raise
            logger.warning("customer already gone at gateway customer_id=%s", customer_id)
        await self.directory.remove(event.uid)
        logger.info("customer removed customer_id=%s", customer_id)
