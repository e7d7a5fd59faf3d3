"""
Currency Exchange Module

Exchange rates are kept as units of each currency per one US dollar.
Country and currency code are each unique among stored currencies.

    Country || Code || Name || Rate
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from .encryption import EncryptionProvider
from .errors import SaveResult
from .logging_config import get_logger, log_action
from .serialization import format_fixed, parse_decimal, to_fixed
from .storage import RecordMode, RecordStore, StorageRecord


@dataclass
class Currency(StorageRecord):
    """Currency with its rate against the US dollar"""
    country: str = ""
    code: str = ""
    name: str = ""
    rate: Decimal = Decimal("0")

    @property
    def key(self) -> str:
        return self.code

    def conflicts_with(self, other: StorageRecord) -> bool:
        if not isinstance(other, Currency):
            return False
        return (self.code.upper() == other.code.upper()
                or self.country.upper() == other.country.upper())

    def to_fields(self, provider: EncryptionProvider) -> List[str]:
        return [self.country, self.code, self.name, format_fixed(self.rate)]

    @classmethod
    def from_fields(cls, values: List[str], provider: EncryptionProvider) -> 'Currency':
        if len(values) != 4:
            raise ValueError(f"Expected 4 currency fields, got {len(values)}")
        return cls(
            country=values[0],
            code=values[1],
            name=values[2],
            rate=parse_decimal(values[3]),
        )


class CurrencyManager:
    """Currency lookups, rate maintenance and conversion"""

    def __init__(self, store: RecordStore[Currency]):
        self.store = store
        self.logger = get_logger("smartbank.currency")

    def new(self, country: str, code: str, name: str, rate: Decimal) -> Currency:
        return Currency(
            country=country,
            code=code.upper(),
            name=name,
            rate=to_fixed(rate),
            mode=RecordMode.NEW,
        )

    def find_by_code(self, code: str) -> Optional[Currency]:
        code = code.upper()
        return self.store.find(lambda c: c.code == code)

    def find_by_country(self, country: str) -> Optional[Currency]:
        country = country.upper()
        return self.store.find(lambda c: c.country.upper() == country)

    def code_exists(self, code: str) -> bool:
        return self.find_by_code(code) is not None

    def country_exists(self, country: str) -> bool:
        return self.find_by_country(country) is not None

    def list(self) -> List[Currency]:
        """All currencies with their USD rates"""
        return self.store.load_all()

    def save(self, currency: Currency) -> SaveResult:
        was_new = currency.mode is RecordMode.NEW
        result = self.store.save(currency)
        if result is SaveResult.SUCCEEDED:
            log_action(
                self.logger, "info",
                f"Currency {'added' if was_new else 'updated'}: {currency.code}",
                action="currency_added" if was_new else "currency_updated",
                resource=f"currency:{currency.code}",
                extra={"country": currency.country, "rate": format_fixed(currency.rate)}
            )
        else:
            self.logger.warning(f"Currency save failed for '{currency.code}': {result.value}")
        return result

    def update_rate(self, currency: Currency, rate: Decimal) -> bool:
        """Set a new rate and persist it immediately"""
        if currency.is_empty:
            raise ValueError("Cannot update the rate of an empty currency")

        old_rate = currency.rate
        currency.rate = to_fixed(rate)
        updated = self.store.update(currency)
        log_action(
            self.logger, "info", f"Currency rate updated: {currency.code}",
            action="currency_rate_updated", resource=f"currency:{currency.code}",
            extra={"old_rate": format_fixed(old_rate), "new_rate": format_fixed(currency.rate)}
        )
        return updated

    def delete(self, currency: Currency) -> bool:
        """Remove the currency from storage and blank the given instance"""
        code = currency.code
        deleted = self.store.delete(currency)
        log_action(
            self.logger, "info" if deleted else "warning",
            f"Currency delete {'completed' if deleted else 'found no record'}: {code}",
            action="currency_deleted", resource=f"currency:{code}"
        )
        return deleted

    @staticmethod
    def to_usd(amount: Decimal, currency: Currency) -> Decimal:
        """Value of amount (in currency) in US dollars"""
        if currency.rate == 0:
            raise ValueError(f"Currency {currency.code} has no rate")
        return Decimal(str(amount)) / currency.rate

    @staticmethod
    def convert(amount: Decimal, from_currency: Currency, to_currency: Currency) -> Decimal:
        """
        Convert amount between two currencies through their USD rates.

        Args:
            amount: Amount in from_currency
            from_currency: Source currency
            to_currency: Target currency

        Returns:
            amount * (to_currency.rate / from_currency.rate)

        Raises:
            ValueError: If the source currency has no rate
        """
        if from_currency.rate == 0:
            raise ValueError(f"Currency {from_currency.code} has no rate")
        return Decimal(str(amount)) * (to_currency.rate / from_currency.rate)
