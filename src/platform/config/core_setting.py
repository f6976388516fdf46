from decimal import Decimal
import json
from pathlib import Path
from typing import Any, Dict, List, Self

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


def _split_csv(v: Any, default: List[str]) -> List[str]:
    if isinstance(v, str) and not v.startswith('['):
        return [i.strip() for i in v.split(',') if i.strip()]
    elif isinstance(v, list):
        return v
    elif isinstance(v, str):
        return json.loads(v)
    return default


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'TicketHub Checkout'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production
    AUTO_CREATE_TABLES: bool = False

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = []  # add your frontend URL here

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        return _split_csv(v, [])

    # Database
    POSTGRES_SERVER: str = 'localhost'
    POSTGRES_USER: str = 'postgres'
    POSTGRES_PASSWORD: SecretStr = SecretStr('postgres')
    POSTGRES_DB: str = 'tickethub'
    POSTGRES_PORT: int = 5432

    # Connection pool
    DB_POOL_SIZE: int = 10
    DB_POOL_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30  # seconds
    DB_POOL_RECYCLE: int = 3600  # seconds
    DB_POOL_PRE_PING: bool = True

    @property
    def DATABASE_URL_ASYNC(self) -> str:
        password = self.POSTGRES_PASSWORD.get_secret_value()
        return f'postgresql+asyncpg://{self.POSTGRES_USER}:{password}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}'

    # Currency
    SETTLEMENT_CURRENCY: str = 'NGN'
    # Units of settlement currency per one unit of the keyed currency
    EXCHANGE_RATES: Dict[str, Decimal] = {
        'NGN': Decimal('1'),
        'USD': Decimal('1600'),
        'GBP': Decimal('2000'),
        'EUR': Decimal('1750'),
        'GHS': Decimal('130'),
        'KES': Decimal('12.5'),
    }

    @field_validator('EXCHANGE_RATES', mode='before')
    @classmethod
    def assemble_exchange_rates(cls, v: str | Dict[str, Any]) -> Dict[str, Any]:
        if isinstance(v, str):
            v = json.loads(v)
        return {str(code).upper(): rate for code, rate in v.items()}

    @model_validator(mode='after')
    def pin_settlement_rate(self) -> Self:
        self.SETTLEMENT_CURRENCY = self.SETTLEMENT_CURRENCY.upper()
        rate = self.EXCHANGE_RATES.setdefault(self.SETTLEMENT_CURRENCY, Decimal('1'))
        if rate != Decimal('1'):
            raise ValueError(f'{self.SETTLEMENT_CURRENCY} is the settlement currency and must map to 1')
        return self

    # Gateway A: Paystack (settlement currency only, flat fee)
    PAYSTACK_BASE_URL: str = 'https://api.paystack.co'
    PAYSTACK_SECRET_KEY: SecretStr = SecretStr('sk_test_xxxxxxxxxxxxxxxxxxxxxxxx')
    PAYSTACK_FLAT_FEE: Decimal = Decimal('100')  # settlement currency
    PAYSTACK_CHANNELS: List[str] = [
        'card',
        'bank_transfer',
        'ussd',
        'mobile_money',
        'qr',
        'bank',
        'opay',
        'payattitude',
    ]

    @field_validator('PAYSTACK_CHANNELS', mode='before')
    @classmethod
    def assemble_paystack_channels(cls, v: str | List[str]) -> List[str]:
        return _split_csv(v, ['card'])

    # Gateway B: Flutterwave (multi-currency, per-currency fee)
    FLUTTERWAVE_BASE_URL: str = 'https://api.flutterwave.com'
    FLUTTERWAVE_SECRET_KEY: SecretStr = SecretStr('FLWSECK_TEST-xxxxxxxxxxxxxxxx-X')
    # Fee per order, expressed in the keyed currency
    FLUTTERWAVE_FEES: Dict[str, Decimal] = {
        'NGN': Decimal('150'),
        'USD': Decimal('1'),
        'GBP': Decimal('1'),
        'EUR': Decimal('1'),
        'GHS': Decimal('5'),
        'KES': Decimal('100'),
    }
    FLUTTERWAVE_PAYMENT_OPTIONS: List[str] = ['card', 'banktransfer', 'ussd', 'mobilemoney']

    @field_validator('FLUTTERWAVE_FEES', mode='before')
    @classmethod
    def assemble_flutterwave_fees(cls, v: str | Dict[str, Any]) -> Dict[str, Any]:
        if isinstance(v, str):
            v = json.loads(v)
        return {str(code).upper(): fee for code, fee in v.items()}

    @field_validator('FLUTTERWAVE_PAYMENT_OPTIONS', mode='before')
    @classmethod
    def assemble_flutterwave_payment_options(cls, v: str | List[str]) -> List[str]:
        return _split_csv(v, ['card'])

    # Payment confirmation
    PAYMENT_CONFIRMATION_TIMEOUT_SECONDS: float = 900.0  # buyer's window on the hosted page
    PAYMENT_POLL_INTERVAL_SECONDS: float = 3.0
    PAYMENT_HTTP_TIMEOUT_SECONDS: float = 10.0
    PAYMENT_CALLBACK_URL: str = 'http://localhost:5173/checkout/callback'
    # Where a buyer who closes the hosted page is sent (Paystack cancel_action)
    PAYMENT_CANCEL_URL: str = 'http://localhost:8000/api/checkout/cancel'
    # Stock is re-read this often while the buyer is on the payment page
    STOCK_RECHECK_INTERVAL_SECONDS: float = 2.0

    # Ticket email
    TICKET_MAIL_API_URL: str = ''  # empty: log-only notifier
    TICKET_MAIL_TIMEOUT_SECONDS: float = 10.0

    # Orders
    MAX_TICKETS_PER_ORDER: int = 10


settings = Settings()  # type: ignore
