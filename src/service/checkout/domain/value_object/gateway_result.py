from typing import Optional

import attrs


@attrs.define(frozen=True)
class GatewaySuccess:
    reference: str  # settlement reference the tickets are issued against
    transaction_id: Optional[str] = None


@attrs.define(frozen=True)
class GatewayCancelled:
    reason: str = 'cancelled by buyer'


@attrs.define(frozen=True)
class GatewayError:
    cause: str


GatewayResult = GatewaySuccess | GatewayCancelled | GatewayError
