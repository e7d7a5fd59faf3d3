"""
Tests for currency records and conversion
"""

import pytest
from decimal import Decimal

from smartbank.currency import Currency, CurrencyManager
from smartbank.encryption import CaesarEncryptionProvider
from smartbank.errors import SaveResult
from smartbank.storage import RecordStore, RecordMode


@pytest.fixture
def manager(tmp_path):
    """Currency manager seeded with three currencies"""
    store = RecordStore(tmp_path / "Currencies.txt", Currency, CaesarEncryptionProvider())
    manager = CurrencyManager(store)
    for country, code, name, rate in [
        ("United States", "USD", "US Dollar", "1"),
        ("Jordan", "JOD", "Jordanian Dinar", "0.709"),
        ("Egypt", "EGP", "Egyptian Pound", "30.9"),
    ]:
        assert manager.save(manager.new(country, code, name, Decimal(rate))) is SaveResult.SUCCEEDED
    return manager


class TestCurrencyLookups:
    """Test finding currencies"""

    def test_find_by_code_is_case_insensitive(self, manager):
        currency = manager.find_by_code("jod")
        assert currency.name == "Jordanian Dinar"
        assert currency.rate == Decimal("0.709")
        assert currency.mode is RecordMode.EXISTING

    def test_find_by_country_is_case_insensitive(self, manager):
        assert manager.find_by_country("EGYPT").code == "EGP"

    def test_missing_currency(self, manager):
        assert manager.find_by_code("XXX") is None
        assert manager.find_by_country("Atlantis") is None
        assert not manager.code_exists("XXX")

    def test_exists(self, manager):
        assert manager.code_exists("usd")
        assert manager.country_exists("jordan")

    def test_list(self, manager):
        assert [c.code for c in manager.list()] == ["USD", "JOD", "EGP"]

    def test_stored_line_format(self, manager):
        lines = manager.store.path.read_text().splitlines()
        assert lines[1] == "Jordan || JOD || Jordanian Dinar || 0.709000"


class TestCurrencyUpdates:
    """Test adding, updating and deleting currencies"""

    def test_duplicate_code_rejected(self, manager):
        duplicate = manager.new("Somewhere", "jod", "Other Dinar", Decimal("1"))
        assert manager.save(duplicate) is SaveResult.KEY_EXISTS

    def test_duplicate_country_rejected(self, manager):
        duplicate = manager.new("jordan", "JDX", "Other Dinar", Decimal("1"))
        assert manager.save(duplicate) is SaveResult.KEY_EXISTS
        assert len(manager.list()) == 3

    def test_update_rate(self, manager):
        currency = manager.find_by_code("EGP")
        assert manager.update_rate(currency, Decimal("48.25"))
        assert manager.find_by_code("EGP").rate == Decimal("48.25")

    def test_update_rate_of_empty_currency(self, manager):
        with pytest.raises(ValueError):
            manager.update_rate(Currency(), Decimal("1"))

    def test_save_existing_updates(self, manager):
        currency = manager.find_by_code("JOD")
        currency.name = "Dinar"
        assert manager.save(currency) is SaveResult.SUCCEEDED
        assert manager.find_by_code("JOD").name == "Dinar"

    def test_delete(self, manager):
        currency = manager.find_by_code("EGP")
        assert manager.delete(currency)
        assert currency.is_empty
        assert not manager.code_exists("EGP")
        assert manager.save(currency) is SaveResult.EMPTY_OBJECT


class TestConversion:
    """Test conversion through USD rates"""

    def test_to_usd(self, manager):
        egp = manager.find_by_code("EGP")
        assert CurrencyManager.to_usd(Decimal("61.8"), egp) == Decimal("2")

    def test_convert_between_currencies(self, manager):
        usd = manager.find_by_code("USD")
        jod = manager.find_by_code("JOD")
        assert CurrencyManager.convert(Decimal("100"), usd, jod) == Decimal("70.9")

    def test_convert_through_usd(self, manager):
        jod = manager.find_by_code("JOD")
        egp = manager.find_by_code("EGP")
        result = CurrencyManager.convert(Decimal("0.709"), jod, egp)
        assert result.quantize(Decimal("0.000001")) == Decimal("30.900000")

    def test_convert_to_same_currency(self, manager):
        jod = manager.find_by_code("JOD")
        assert CurrencyManager.convert(Decimal("12"), jod, jod) == Decimal("12")

    def test_zero_rate_rejected(self):
        broken = Currency(country="Nowhere", code="NWH", name="Nothing", rate=Decimal("0"))
        usd = Currency(country="United States", code="USD", name="US Dollar", rate=Decimal("1"))
        with pytest.raises(ValueError):
            CurrencyManager.convert(Decimal("1"), broken, usd)
        with pytest.raises(ValueError):
            CurrencyManager.to_usd(Decimal("1"), broken)


class TestRatePrecision:
    """Test that rates are held as they are stored"""

    def test_new_rate_rounded_to_six_places(self, manager):
        currency = manager.new("Testland", "TST", "Test Mark", 1 / 3)
        assert currency.rate == Decimal("0.333333")
        manager.save(currency)
        assert manager.find_by_code("TST") == currency

    def test_update_rate_rounded_to_six_places(self, manager):
        currency = manager.find_by_code("EGP")
        manager.update_rate(currency, Decimal("48.1234567"))
        assert currency.rate == manager.find_by_code("EGP").rate == Decimal("48.123457")

    @pytest.mark.parametrize("rate", [float("nan"), float("inf")])
    def test_non_finite_rate_rejected(self, manager, rate):
        currency = manager.find_by_code("EGP")
        with pytest.raises(ValueError):
            manager.update_rate(currency, rate)
        with pytest.raises(ValueError):
            manager.new("Testland", "TST", "Test Mark", rate)
        assert manager.find_by_code("EGP").rate == Decimal("30.9")
