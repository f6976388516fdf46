from uuid import UUID

import attrs

from src.platform.exception.exceptions import DomainError


SCAN_PAYLOAD_DELIMITER = '|'


class MalformedScanPayloadError(DomainError):
    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__('Malformed ticket code', 400)


@attrs.define(frozen=True)
class ScanPayload:
    """
    Scanner contract: `{event_id}|{tier_id}|{reference}|{index}`.

    `reference` is the gateway settlement reference (or `FREE-{order_id}` for free
    orders) and `index` is the zero-based unit number within the order.
    """

    event_id: UUID
    tier_id: UUID
    reference: str
    index: int

    def __attrs_post_init__(self) -> None:
        if not self.reference or SCAN_PAYLOAD_DELIMITER in self.reference:
            raise ValueError(f'Invalid payment reference for scan payload: {self.reference!r}')
        if self.index < 0:
            raise ValueError('Scan payload index must be zero or positive')

    def encode(self) -> str:
        return SCAN_PAYLOAD_DELIMITER.join(
            (str(self.event_id), str(self.tier_id), self.reference, str(self.index))
        )

    @classmethod
    def parse(cls, raw: str) -> 'ScanPayload':
        parts = raw.strip().split(SCAN_PAYLOAD_DELIMITER)
        if len(parts) != 4:
            raise MalformedScanPayloadError(raw)
        event_id, tier_id, reference, index = parts
        try:
            return cls(
                event_id=UUID(event_id),
                tier_id=UUID(tier_id),
                reference=reference,
                index=int(index),
            )
        except ValueError:
            raise MalformedScanPayloadError(raw) from None

    def __str__(self) -> str:
        return self.encode()
