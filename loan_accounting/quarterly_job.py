"""
Quarterly Interest Batch Job

Orchestrates one quarterly interest run: resolves the fiscal quarter, applies
interest to every active customer through the store's idempotent
per-customer operation, folds the outcomes into a run summary and writes one
audit notification.

Per-customer failures (exceptions, malformed responses, timeouts) become
error outcomes and never stop the run. Only a failure outside the
per-customer loop aborts it, as a FatalRunError.
"""

from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
import hmac
import uuid

from .config import LoanAccountingConfig, get_config
from .currency import Money, Currency, sum_money, parse_currency
from .customers import Customer
from .exceptions import AuthorizationError, FatalRunError
from .fiscal import FiscalQuarter, resolve_fiscal_quarter, fiscal_year_label
from .interest import InterestOutcome, OutcomeStatus
from .logging_config import get_logger, log_action
from .notifications import NotificationSink, NotificationStatus, NotificationType
from .storage import utc_now


# 18:30 UTC on the 1st of Jan/Apr/Jul/Oct, i.e. 00:00 IST on the 2nd
QUARTERLY_INTEREST_SCHEDULE = "30 18 1 1,4,7,10 *"

NOTIFICATION_SOURCE = "quarterly-interest-cron"


@dataclass(frozen=True)
class BatchRunResult:
    """Folded outcome of one run; built once and never mutated"""
    outcomes: Tuple[InterestOutcome, ...]
    success_count: int
    skipped_count: int
    error_count: int
    total_interest: Money

    def by_status(self, status: OutcomeStatus) -> List[InterestOutcome]:
        return [o for o in self.outcomes if o.status == status]


def fold_outcomes(outcomes: Iterable[InterestOutcome], currency: Currency) -> BatchRunResult:
    """Reduce per-customer outcomes into counts and the total interest charged"""
    outcomes = tuple(outcomes)
    successes = [o for o in outcomes if o.status == OutcomeStatus.SUCCESS]
    return BatchRunResult(
        outcomes=outcomes,
        success_count=len(successes),
        skipped_count=sum(1 for o in outcomes if o.status == OutcomeStatus.SKIPPED),
        error_count=sum(1 for o in outcomes if o.status == OutcomeStatus.ERROR),
        total_interest=sum_money((o.interest_charged for o in successes), currency),
    )


def summary_status(result: BatchRunResult) -> NotificationStatus:
    """Warning when anything failed, Pending when nothing new was charged, else Success"""
    if result.error_count > 0:
        return NotificationStatus.WARNING
    if result.success_count == 0:
        return NotificationStatus.PENDING
    return NotificationStatus.SUCCESS


def build_summary(
    quarter: FiscalQuarter,
    fy: str,
    result: BatchRunResult,
    sample_size: int = 5
) -> Tuple[NotificationStatus, str, Dict[str, Any]]:
    """
    Build the audit notification for a completed run.

    Samples are bounded to sample_size entries per category so a large run
    cannot produce an unbounded payload.

    Returns:
        (status, message, metadata)
    """
    status = summary_status(result)
    total = result.total_interest.to_display()
    prefix = f"Quarterly Interest ({quarter.label} FY {fy})"
    counts = f"{result.skipped_count} skipped, {result.error_count} errors"

    if status == NotificationStatus.WARNING:
        message = f"{prefix}: {result.success_count} customers charged {total}, {counts}"
    elif status == NotificationStatus.PENDING:
        message = (f"{prefix}: No new interest applied ({total} charged across "
                   f"0 customers), {counts}")
    else:
        message = f"{prefix}: {total} charged across {result.success_count} customers, {counts}"

    successes = result.by_status(OutcomeStatus.SUCCESS)
    skipped = result.by_status(OutcomeStatus.SKIPPED)
    errors = result.by_status(OutcomeStatus.ERROR)

    metadata = {
        "source": NOTIFICATION_SOURCE,
        "quarter": quarter.label,
        "fy": fy,
        "period_start": quarter.start.isoformat(),
        "period_end": quarter.end.isoformat(),
        "total_interest": result.total_interest.to_raw(),
        "success_count": result.success_count,
        "skipped_count": result.skipped_count,
        "error_count": result.error_count,
        "total_customers_processed": len(result.outcomes),
        "sampled_customers": {
            "success": [
                {
                    "id": o.customer_id,
                    "name": o.customer_name,
                    "interest_charged": o.interest_charged.to_raw(),
                    "subscription_total": o.subscription_total.to_raw() if o.subscription_total else "0",
                }
                for o in successes[:sample_size]
            ],
            "skipped": [
                {"id": o.customer_id, "name": o.customer_name, "reason": o.reason or "Skipped"}
                for o in skipped[:sample_size]
            ],
            "errors": [
                {"id": o.customer_id, "name": o.customer_name, "error": o.error or "Unknown error"}
                for o in errors[:sample_size]
            ],
        },
        "top_errors": [o.error or "Unknown error" for o in errors[:sample_size]],
    }
    return status, message, metadata


class QuarterlyInterestJob:
    """
    Quarterly interest orchestrator.

    Collaborators:
        customer_directory: provides list_active_customers()
        interest_service: provides apply_quarterly_interest_for_customer(customer_id, as_of),
            returning an InterestOutcome or an equivalent dict
        notification_sink: provides create_notification(type, status, message, metadata)
    """

    def __init__(
        self,
        customer_directory,
        interest_service,
        notification_sink: NotificationSink,
        config: Optional[LoanAccountingConfig] = None
    ):
        self.customer_directory = customer_directory
        self.interest_service = interest_service
        self.notification_sink = notification_sink
        self.config = config or get_config()
        self.currency = parse_currency(self.config.currency)
        self.timeout = self.config.per_customer_timeout_seconds
        self.max_workers = max(1, self.config.job_max_workers)
        self.sample_size = self.config.notification_sample_size
        self.logger = get_logger("loan_accounting.quarterly_job")

    def authorize(self, authorization: Optional[str]) -> None:
        """
        Check the trigger's Authorization header.

        With a secret configured the header must be exactly "Bearer <secret>".
        Without one, the job only runs outside production.

        Raises:
            AuthorizationError: Credential missing or wrong, or no secret
                configured in production
        """
        secret = self.config.cron_secret
        if not secret:
            if self.config.is_production:
                self.logger.error("Refusing to run: no cron secret configured in production")
                raise AuthorizationError("Cron secret is not configured")
            self.logger.warning(
                f"No cron secret configured; skipping auth check in {self.config.environment} mode"
            )
            return

        expected = f"Bearer {secret}"
        if authorization is None or not hmac.compare_digest(
            authorization.encode("utf-8"), expected.encode("utf-8")
        ):
            self.logger.error("Unauthorized: invalid or missing cron credential")
            raise AuthorizationError("Invalid or missing cron credential")

    def trigger(self, authorization: Optional[str], now: Optional[datetime] = None) -> Dict[str, Any]:
        """Authorize then run; no customer is touched when authorization fails"""
        self.authorize(authorization)
        return self.run(now)

    def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Execute one quarterly interest run.

        Returns:
            Structured result with status "completed" (or "no_customers")

        Raises:
            FatalRunError: If the run could not meaningfully start or finish
                outside the per-customer loop
        """
        now = now or utc_now()
        run_id = str(uuid.uuid4())
        quarter = resolve_fiscal_quarter(now)
        fy = fiscal_year_label(quarter, now.year)

        log_action(
            self.logger, "info",
            f"Quarterly interest run started for {quarter.label} FY {fy} "
            f"({quarter.start.isoformat()} to {quarter.end.isoformat()})",
            action="quarterly_interest_started", correlation_id=run_id
        )

        try:
            customers = self.customer_directory.list_active_customers()

            if not customers:
                log_action(self.logger, "info", "No active customers found. Nothing to do.",
                           action="quarterly_interest_no_customers", correlation_id=run_id)
                self._publish(
                    NotificationStatus.PENDING,
                    f"Quarterly Interest ({quarter.label} FY {fy}): No active customers, nothing to do",
                    {
                        "source": NOTIFICATION_SOURCE,
                        "quarter": quarter.label,
                        "fy": fy,
                        "period_start": quarter.start.isoformat(),
                        "period_end": quarter.end.isoformat(),
                        "total_customers_processed": 0,
                    },
                    run_id
                )
                return {
                    "status": "no_customers",
                    "run_id": run_id,
                    "quarter": quarter.to_dict(),
                    "fy": fy,
                    "timestamp": now.isoformat(),
                }

            log_action(self.logger, "info", f"Processing {len(customers)} customers",
                       action="quarterly_interest_processing", correlation_id=run_id)

            outcomes = self._apply_all(customers, now, run_id)
            result = fold_outcomes(outcomes, self.currency)

            log_action(
                self.logger, "info",
                f"Quarterly interest summary: {result.success_count} success, "
                f"{result.skipped_count} skipped, {result.error_count} errors",
                action="quarterly_interest_summary", correlation_id=run_id,
                extra={"total_interest": result.total_interest.to_raw()}
            )

            status, message, metadata = build_summary(quarter, fy, result, self.sample_size)
            metadata["run_id"] = run_id
            self._publish(status, message, metadata, run_id)

            return {
                "status": "completed",
                "run_id": run_id,
                "quarter": quarter.to_dict(),
                "fy": fy,
                "timestamp": now.isoformat(),
                "totals": {
                    "success": result.success_count,
                    "skipped": result.skipped_count,
                    "errors": result.error_count,
                },
                "total_interest": result.total_interest.to_raw(),
                "details": [
                    {"id": o.customer_id, "name": o.customer_name, **o.to_dict()}
                    for o in result.outcomes
                ],
            }

        except Exception as e:
            log_action(self.logger, "error", f"Fatal error in quarterly interest run: {e}",
                       action="quarterly_interest_failed", correlation_id=run_id, exc_info=True)
            self._publish(
                NotificationStatus.ERROR,
                f"Quarterly Interest Cron Failed: {e}",
                {"source": NOTIFICATION_SOURCE, "error": str(e), "run_id": run_id},
                run_id
            )
            raise FatalRunError(str(e) or type(e).__name__, cause=e) from e

    def _apply_all(self, customers: List[Customer], now: datetime, run_id: str) -> List[InterestOutcome]:
        """
        Apply interest to every customer in waves of max_workers threads.

        All calls in a wave start together, so waiting the timeout once per
        wave bounds each call. Calls still running after that are recorded
        as errors and abandoned.
        """
        outcomes: List[InterestOutcome] = []

        for offset in range(0, len(customers), self.max_workers):
            wave = customers[offset:offset + self.max_workers]
            executor = ThreadPoolExecutor(max_workers=len(wave), thread_name_prefix="quarterly-interest")
            try:
                futures = [executor.submit(self._apply_one, customer, now, run_id) for customer in wave]
                done, _ = wait(futures, timeout=self.timeout)
                for customer, future in zip(wave, futures):
                    if future in done:
                        outcomes.append(self._collect(customer, future))
                    else:
                        future.cancel()
                        log_action(self.logger, "error",
                                   f"Interest application timed out for {customer.name} ({customer.id})",
                                   action="quarterly_interest_timeout", resource=customer.id,
                                   correlation_id=run_id)
                        outcomes.append(InterestOutcome.failed(
                            customer.id, f"Timed out after {self.timeout:g}s",
                            customer_name=customer.name
                        ))
            finally:
                executor.shutdown(wait=False, cancel_futures=True)

        return outcomes

    def _collect(self, customer: Customer, future: Future) -> InterestOutcome:
        try:
            return future.result()
        except Exception as e:
            return InterestOutcome.failed(customer.id, str(e) or type(e).__name__,
                                          customer_name=customer.name)

    def _apply_one(self, customer: Customer, now: datetime, run_id: str) -> InterestOutcome:
        """Call the store for one customer; any failure becomes an error outcome"""
        try:
            response = self.interest_service.apply_quarterly_interest_for_customer(customer.id, now)
            outcome = self._normalize(customer, response)
        except Exception as e:
            log_action(self.logger, "error", f"Exception for {customer.name} ({customer.id}): {e}",
                       action="quarterly_interest_customer_error", resource=customer.id,
                       correlation_id=run_id, exc_info=True)
            return InterestOutcome.failed(customer.id, str(e) or type(e).__name__,
                                          customer_name=customer.name)

        if outcome.status == OutcomeStatus.SUCCESS:
            message = (f"{customer.name}: {outcome.interest_charged.to_display()} interest applied "
                       f"(sub total: {outcome.subscription_total.to_display() if outcome.subscription_total else '-'})")
            level = "info"
        elif outcome.status == OutcomeStatus.SKIPPED:
            message = f"{customer.name}: Skipped - {outcome.reason}"
            level = "info"
        else:
            message = f"{customer.name}: {outcome.error}"
            level = "error"
        log_action(self.logger, level, message, action=f"quarterly_interest_{outcome.status.value}",
                   resource=customer.id, correlation_id=run_id)
        return outcome

    def _normalize(self, customer: Customer, response: Any) -> InterestOutcome:
        """
        Coerce a store response into an InterestOutcome for this customer.

        Raises:
            TypeError, ValueError: On a malformed response
        """
        if isinstance(response, dict):
            response = InterestOutcome.from_dict(response, self.currency)
        if not isinstance(response, InterestOutcome):
            raise TypeError(f"Unexpected interest response type: {type(response).__name__}")
        if response.status == OutcomeStatus.SUCCESS and response.interest_charged is None:
            raise ValueError("Success response without interest_charged")
        if response.status == OutcomeStatus.SUCCESS and not response.interest_charged.is_finite():
            raise ValueError("Success response with non-finite interest_charged")
        for name in ("interest_charged", "subscription_total",
                     "previous_total_interest", "new_total_interest"):
            value = getattr(response, name)
            if value is not None and value.currency != self.currency:
                raise ValueError(
                    f"Interest response {name} is in {value.currency.code}, "
                    f"expected {self.currency.code}"
                )

        return replace(
            response,
            customer_id=customer.id,
            customer_name=response.customer_name or customer.name
        )

    def _publish(self, status: NotificationStatus, message: str,
                 metadata: Dict[str, Any], run_id: str) -> None:
        """Best-effort audit write; a failure is logged and never changes the run result"""
        try:
            self.notification_sink.create_notification(
                NotificationType.QUARTERLY_INTEREST, status, message, metadata
            )
            log_action(self.logger, "info", "Notification created in system_notifications",
                       action="quarterly_interest_notified", correlation_id=run_id)
        except Exception as e:
            log_action(self.logger, "error", f"Failed to create notification (non-blocking): {e}",
                       action="quarterly_interest_notify_failed", correlation_id=run_id,
                       exc_info=True)
