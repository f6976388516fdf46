import attrs


@attrs.define(frozen=True)
class BuyerContact:
    name: str
    email: str
    phone: str
