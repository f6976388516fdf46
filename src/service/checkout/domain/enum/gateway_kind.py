from enum import StrEnum


class GatewayKind(StrEnum):
    PAYSTACK = 'paystack'  # settlement currency only, flat fee
    FLUTTERWAVE = 'flutterwave'  # multi-currency, per-currency fee
