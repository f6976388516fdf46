from decimal import Decimal
import re

import pytest
from uuid_utils.compat import uuid7

from src.service.checkout.domain.entity.ticket_entity import Ticket
from src.service.checkout.domain.value_object.payment_reference import (
    generate_payment_reference,
)
from src.service.checkout.domain.value_object.scan_payload import (
    MalformedScanPayloadError,
    ScanPayload,
)


@pytest.mark.unit
class TestScanPayload:
    def test_encode_joins_the_four_fields_with_pipes(self):
        event_id, tier_id = uuid7(), uuid7()

        payload = ScanPayload(event_id=event_id, tier_id=tier_id, reference='PSK-9', index=2)

        assert payload.encode() == f'{event_id}|{tier_id}|PSK-9|2'
        assert str(payload) == payload.encode()

    def test_parse_reads_back_what_encode_wrote(self):
        original = ScanPayload(event_id=uuid7(), tier_id=uuid7(), reference='FREE-x', index=0)

        assert ScanPayload.parse(f'  {original.encode()}\n') == original

    @pytest.mark.parametrize(
        'raw',
        [
            '',
            'only|three|parts',
            'not-a-uuid|not-a-uuid|REF|0',
            '{e}|{t}|REF|zero',
            '{e}|{t}|REF|-1',
            '{e}|{t}||0',
            '{e}|{t}|REF|0|extra',
        ],
    )
    def test_malformed_payloads_are_rejected(self, raw: str):
        raw = raw.format(e=uuid7(), t=uuid7())

        with pytest.raises(MalformedScanPayloadError):
            ScanPayload.parse(raw)

    def test_reference_may_not_contain_the_delimiter(self):
        with pytest.raises(ValueError):
            ScanPayload(event_id=uuid7(), tier_id=uuid7(), reference='A|B', index=0)


@pytest.mark.unit
class TestTicketIssue:
    def test_each_unit_gets_a_distinct_payload(self):
        order_id, event_id, tier_id = uuid7(), uuid7(), uuid7()

        tickets = [
            Ticket.issue(
                order_id=order_id,
                event_id=event_id,
                tier_id=tier_id,
                reference='PSK-9',
                unit_index=i,
                price=Decimal('10000'),
            )
            for i in range(3)
        ]

        assert len({t.scan_payload for t in tickets}) == 3
        assert [ScanPayload.parse(t.scan_payload).index for t in tickets] == [0, 1, 2]
        assert all(not t.is_used for t in tickets)


@pytest.mark.unit
class TestPaymentReference:
    def test_reference_format(self):
        reference = generate_payment_reference()

        assert re.fullmatch(r'THUB-\d{13}-[A-Z0-9]{6}', reference)

    def test_references_are_unique(self):
        assert len({generate_payment_reference() for _ in range(200)}) == 200
