import datetime
from decimal import Decimal
import pytest
from ledger_core.models import JournalEntry, LedgerAccount
from ..services.accounts import create_ledger_account
from ..services.balances import (account_balance, group_balance, nature_total,
                                 opening_balance_as_of, resolve_balance,
                                 signed_balance, trial_balance)
from ..services.vouchers import create_voucher
from .helpers import LedgerTestCase, group, line, voucher_type


@pytest.mark.parametrize(
    "nature, debit, credit, amount, kind",
    [
        ("assets", Decimal("500"), Decimal("0"), Decimal("500"), "debit"),
        ("expense", Decimal("100"), Decimal("300"), Decimal("200"), "credit"),
        ("income", Decimal("0"), Decimal("500"), Decimal("500"), "credit"),
        ("liabilities", Decimal("80"), Decimal("30"), Decimal("50"), "debit"),
        ("equity", Decimal("0"), Decimal("0"), Decimal("0"), "credit"),
    ],
)
def test_resolve_balance_sign_convention(nature, debit, credit, amount, kind):
    balance = resolve_balance(nature, debit, credit)
    assert (balance.amount, balance.type) == (amount, kind)


class AccountBalanceTests(LedgerTestCase):

    def test_opening_balance_is_folded_in(self):
        savings = create_ledger_account(
            self.business, group(self.business, "Bank Accounts"), "Savings",
            opening_balance=Decimal("1000"), opening_balance_type="debit")

        balance = account_balance(savings)
        self.assertEqual((balance.amount, balance.type), (Decimal("1000.00"), "debit"))
        self.assertEqual(balance.total_debit, Decimal("1000.00"))

    def test_negative_balance_flips_type(self):
        self.pay_rent(200)

        cash = account_balance(self.cash)
        self.assertEqual((cash.amount, cash.type), (Decimal("200.00"), "credit"))
        self.assertEqual(signed_balance(self.cash), Decimal("-200.00"))

    def test_as_of_and_opening_as_of(self):
        self.sale(100, date=datetime.date(2025, 3, 1))
        self.sale(40, date=datetime.date(2025, 6, 1))

        self.assertEqual(account_balance(self.cash, as_of=datetime.date(2025, 4, 1)).amount,
                         Decimal("100.00"))
        self.assertEqual(account_balance(self.cash).amount, Decimal("140.00"))
        # strictly before from_date
        self.assertEqual(opening_balance_as_of(self.cash, datetime.date(2025, 6, 1)).amount,
                         Decimal("100.00"))
        self.assertEqual(opening_balance_as_of(self.cash, datetime.date(2025, 3, 1)).amount,
                         Decimal("0.00"))


class TrialBalanceTests(LedgerTestCase):

    def setUp(self):
        super().setUp()
        self.voucher([line(self.bank, debit=5000), line(self.capital, credit=5000)],
                     date=datetime.date(2025, 1, 10))
        self.sale(1000)
        self.pay_rent(300)

    def test_grand_totals_agree(self):
        report = trial_balance(self.business)

        self.assertTrue(report["is_balanced"])
        self.assertEqual(report["total_debit"], Decimal("6300.00"))
        self.assertEqual(report["total_credit"], Decimal("6300.00"))
        by_account = {row["account"]: row for row in report["rows"]}
        self.assertEqual(by_account[self.cash]["balance"], Decimal("700.00"))
        self.assertEqual(by_account[self.cash]["balance_type"], "debit")
        self.assertEqual(by_account[self.sales]["balance_type"], "credit")

    def test_zero_rows_are_dropped_unless_requested(self):
        accounts = {row["account"] for row in trial_balance(self.business)["rows"]}
        self.assertEqual(accounts, {self.bank, self.capital, self.cash, self.sales, self.rent})

        everything = trial_balance(self.business, include_zero=True)
        self.assertEqual(len(everything["rows"]),
                         LedgerAccount.objects.filter(business=self.business).count())

    def test_as_of_and_grouping(self):
        report = trial_balance(self.business, as_of=datetime.date(2025, 1, 31),
                               group_by_account_group=True)

        self.assertEqual(report["total_debit"], Decimal("5000.00"))
        groups = {entry["group"].name: entry for entry in report["groups"]}
        self.assertEqual(set(groups), {"Bank Accounts", "Capital Account"})
        self.assertEqual(groups["Bank Accounts"]["total_debit"], Decimal("5000.00"))

    def test_balance_invariant_holds_across_all_rows(self):
        # balanced opening balances on both sides
        create_ledger_account(
            self.business, group(self.business, "Fixed Assets"), "Equipment",
            opening_balance=Decimal("2500"), opening_balance_type="debit")
        create_ledger_account(
            self.business, group(self.business, "Retained Earnings"), "Brought Forward",
            opening_balance=Decimal("2500"), opening_balance_type="credit")

        net = Decimal("0.00")
        for entry in JournalEntry.objects.for_business(self.business):
            net += entry.debit_amount - entry.credit_amount
        for account in LedgerAccount.objects.for_business(self.business):
            sign = 1 if account.opening_balance_type == "debit" else -1
            net += sign * account.opening_balance
        self.assertEqual(net, Decimal("0.00"))

        report = trial_balance(self.business, include_opening_balances=True)
        self.assertTrue(report["is_balanced"])


class AggregationTests(LedgerTestCase):

    def test_nature_total_and_windows(self):
        self.sale(1000, date=datetime.date(2025, 2, 1))
        self.sale(500, date=datetime.date(2025, 5, 1))

        self.assertEqual(nature_total(self.business, "income")["total"], Decimal("1500.00"))
        windowed = nature_total(self.business, "income", to_date=datetime.date(2025, 5, 31),
                                from_date=datetime.date(2025, 3, 1))
        self.assertEqual(windowed["total"], Decimal("500.00"))
        self.assertEqual(windowed["total_credit"], Decimal("500.00"))

    def test_opening_balances_count_only_for_point_in_time_totals(self):
        create_ledger_account(
            self.business, group(self.business, "Cash in Hand"), "Petty Cash",
            opening_balance=Decimal("50"), opening_balance_type="debit")

        self.assertEqual(nature_total(self.business, "assets")["total"], Decimal("50.00"))
        self.assertEqual(
            nature_total(self.business, "assets", from_date=datetime.date(2025, 1, 1))["total"],
            Decimal("0.00"))

    def test_group_balance_rolls_up_children(self):
        self.sale(700)
        self.voucher([line(self.bank, debit=300), line(self.capital, credit=300)])

        current = group_balance(group(self.business, "Current Assets"))
        self.assertEqual(current["balance"], Decimal("1000.00"))
        children = {node["group"].name: node["balance"] for node in current["children"]}
        self.assertEqual(children["Cash in Hand"], Decimal("700.00"))
        self.assertEqual(children["Bank Accounts"], Decimal("300.00"))

    def test_other_business_rows_are_ignored(self):
        from .helpers import make_business, make_chart

        other, _ = make_business("Other Co")
        chart = make_chart(other)
        create_voucher(other, voucher_type=voucher_type(other), date=datetime.date(2025, 3, 1),
                       items=[line(chart["cash"], debit=999), line(chart["sales"], credit=999)])

        self.assertEqual(trial_balance(self.business)["rows"], [])
        self.assertEqual(nature_total(self.business, "income")["total"], Decimal("0.00"))
