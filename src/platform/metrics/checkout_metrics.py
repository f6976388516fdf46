from prometheus_client import Counter, Histogram


class CheckoutMetrics:
    """
    Checkout Core Metrics Collector

    Tracks checkout outcomes, gateway round-trips, issued tickets and
    ticket email delivery failures.
    """

    def __init__(self):
        # ========== Checkout Business Metrics ==========
        self.checkout_outcomes = Counter(
            'checkout_outcomes_total',
            'Checkout attempts by terminal state',
            ['gateway', 'currency', 'state', 'error_code'],
        )

        self.checkout_duration = Histogram(
            'checkout_duration_seconds',
            'End-to-end checkout duration',
            ['gateway', 'state'],
            buckets=[0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0],
        )

        self.tickets_issued = Counter(
            'tickets_issued_total',
            'Tickets issued',
            ['event_id', 'tier_id'],
        )

        # ========== Gateway Metrics ==========
        self.gateway_requests = Counter(
            'gateway_requests_total',
            'Total payment gateway authorizations',
            ['gateway', 'result'],  # result: success/cancelled/error
        )

        self.gateway_duration = Histogram(
            'gateway_authorization_duration_seconds',
            'Time from session open to terminal gateway status',
            ['gateway'],
            buckets=[0.5, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 900.0],
        )

        self.gateway_refunds = Counter(
            'gateway_refunds_total',
            'Refunds requested after post-payment issuance failure',
            ['gateway', 'result'],
        )

        # ========== Notification Metrics ==========
        self.notification_failures = Counter(
            'ticket_notification_failures_total',
            'Ticket emails that could not be delivered',
            ['notifier'],
        )

    # ========== Helper Methods ==========

    def record_checkout(
        self, *, gateway: str, currency: str, state: str, error_code: str, duration: float
    ):
        self.checkout_outcomes.labels(
            gateway=gateway, currency=currency, state=state, error_code=error_code
        ).inc()
        self.checkout_duration.labels(gateway=gateway, state=state).observe(duration)

    def record_gateway(self, *, gateway: str, result: str, duration: float):
        self.gateway_requests.labels(gateway=gateway, result=result).inc()
        self.gateway_duration.labels(gateway=gateway).observe(duration)

    def record_refund(self, *, gateway: str, result: str):
        self.gateway_refunds.labels(gateway=gateway, result=result).inc()

    def record_tickets_issued(self, *, event_id: str, tier_id: str, count: int):
        self.tickets_issued.labels(event_id=event_id, tier_id=tier_id).inc(count)

    def record_notification_failure(self, *, notifier: str):
        self.notification_failures.labels(notifier=notifier).inc()


# Global metrics instance
metrics = CheckoutMetrics()
