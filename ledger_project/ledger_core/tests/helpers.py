import datetime
from decimal import Decimal
from django.test import TestCase
from ledger_core.models import AccountGroup, Business, Currency, User, VoucherType
from ledger_core.services.accounts import create_ledger_account
from ledger_core.services.bootstrap import bootstrap_business
from ledger_core.services.vouchers import create_voucher

YEAR_START = datetime.date(2025, 1, 1)
YEAR_END = datetime.date(2025, 12, 31)


def make_business(name="Test Co"):
    """Business with the standard chart, voucher types and FY 2025."""
    usd, _ = Currency.objects.get_or_create(code="USD", defaults={"name": "US Dollar"})
    business = Business.objects.create(name=name, default_currency=usd)
    seeded = bootstrap_business(business, YEAR_START, YEAR_END)
    return business, seeded["financial_year"]


def group(business, name):
    return AccountGroup.objects.get(business=business, name=name)


def voucher_type(business, code="JRN"):
    return VoucherType.objects.get(business=business, code=code)


def make_chart(business):
    """The handful of accounts most tests post against."""
    return {
        "cash": create_ledger_account(
            business, group(business, "Cash in Hand"), "Cash", code="1100",
            is_cash_account=True),
        "bank": create_ledger_account(
            business, group(business, "Bank Accounts"), "Main Bank", code="1200",
            is_bank_account=True),
        "sales": create_ledger_account(
            business, group(business, "Sales"), "Product Sales", code="4000"),
        "rent": create_ledger_account(
            business, group(business, "Administrative Expenses"), "Rent", code="5100"),
        "capital": create_ledger_account(
            business, group(business, "Capital Account"), "Owner Capital", code="3000"),
    }


def line(account, debit=0, credit=0, **extra):
    return {
        "ledger_account": account,
        "debit_amount": Decimal(str(debit)),
        "credit_amount": Decimal(str(credit)),
        **extra,
    }


class LedgerTestCase(TestCase):
    """Bootstrapped business with a small chart of accounts."""

    def setUp(self):
        self.user = User.objects.create_user(username="alice", password="pw")
        self.business, self.year = make_business()
        chart = make_chart(self.business)
        self.cash = chart["cash"]
        self.bank = chart["bank"]
        self.sales = chart["sales"]
        self.rent = chart["rent"]
        self.capital = chart["capital"]

    def voucher(self, items, date=datetime.date(2025, 3, 1), code="JRN", **kwargs):
        kwargs.setdefault("user", self.user)
        return create_voucher(
            self.business,
            voucher_type=voucher_type(self.business, code),
            date=date,
            items=items,
            **kwargs,
        )

    def sale(self, amount, date=datetime.date(2025, 3, 1), **kwargs):
        """Cash sale: debit Cash, credit Sales."""
        return self.voucher(
            [line(self.cash, debit=amount), line(self.sales, credit=amount)],
            date=date, **kwargs)

    def pay_rent(self, amount, date=datetime.date(2025, 3, 1), **kwargs):
        return self.voucher(
            [line(self.rent, debit=amount), line(self.cash, credit=amount)],
            date=date, **kwargs)
