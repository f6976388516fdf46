import attrs

from src.service.checkout.domain.enum.gateway_kind import GatewayKind
from src.service.checkout.domain.value_object.fee_schedule import FeeSchedule


def _upper_codes(codes: frozenset[str] | set[str] | list[str]) -> frozenset[str]:
    return frozenset(code.upper() for code in codes)


@attrs.define(frozen=True)
class PaymentGatewayConfig:
    kind: GatewayKind
    display_name: str
    supported_currencies: frozenset[str] = attrs.field(converter=_upper_codes)
    fee_schedule: FeeSchedule
    payment_instruments: tuple[str, ...] = attrs.field(converter=tuple, factory=tuple)
    amount_in_minor_units: bool = False

    def supports(self, currency: str) -> bool:
        return currency.upper() in self.supported_currencies
