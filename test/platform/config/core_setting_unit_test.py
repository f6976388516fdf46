from decimal import Decimal

from pydantic import ValidationError
import pytest

from src.platform.config.core_setting import Settings


@pytest.mark.unit
class TestSettings:
    def test_settlement_currency_is_pinned_to_one(self):
        settings = Settings(  # type: ignore[call-arg]
            SETTLEMENT_CURRENCY='ghs', EXCHANGE_RATES={'usd': 15}
        )

        assert settings.SETTLEMENT_CURRENCY == 'GHS'
        assert settings.EXCHANGE_RATES == {'USD': Decimal('15'), 'GHS': Decimal('1')}

    def test_settlement_rate_other_than_one_is_rejected(self):
        with pytest.raises(ValidationError, match='settlement currency'):
            Settings(EXCHANGE_RATES={'NGN': 2, 'USD': 1600})  # type: ignore[call-arg]

    def test_rates_and_fees_accept_json(self):
        settings = Settings(  # type: ignore[call-arg]
            EXCHANGE_RATES='{"ngn": 1, "eur": "1750.5"}',
            FLUTTERWAVE_FEES='{"ngn": 150, "eur": 1}',
        )

        assert settings.EXCHANGE_RATES['EUR'] == Decimal('1750.5')
        assert settings.FLUTTERWAVE_FEES == {'NGN': Decimal('150'), 'EUR': Decimal('1')}

    @pytest.mark.parametrize(
        'raw,expected',
        [
            ('card, ussd', ['card', 'ussd']),
            ('["card", "qr"]', ['card', 'qr']),
            (['bank'], ['bank']),
        ],
    )
    def test_channel_lists_accept_csv_or_json(self, raw, expected):
        settings = Settings(  # type: ignore[call-arg]
            PAYSTACK_CHANNELS=raw, FLUTTERWAVE_PAYMENT_OPTIONS=raw
        )

        assert settings.PAYSTACK_CHANNELS == expected
        assert settings.FLUTTERWAVE_PAYMENT_OPTIONS == expected

    def test_database_url_uses_asyncpg(self):
        settings = Settings(  # type: ignore[call-arg]
            POSTGRES_SERVER='db', POSTGRES_PORT=6543, POSTGRES_DB='tickets', POSTGRES_USER='u'
        )

        assert settings.DATABASE_URL_ASYNC.startswith('postgresql+asyncpg://u:')
        assert settings.DATABASE_URL_ASYNC.endswith('@db:6543/tickets')
