import datetime
from decimal import Decimal
import pytest
from django.core.exceptions import ValidationError
from ..services.reports import (balance_sheet, cash_flow, comparative_period,
                                dashboard_summary, financial_ratios, ledger_statement,
                                monthly_series, profit_and_loss)
from .helpers import LedgerTestCase, line

MARCH = (datetime.date(2025, 3, 1), datetime.date(2025, 3, 31))
APRIL = (datetime.date(2025, 4, 1), datetime.date(2025, 4, 30))


class StatementTestCase(LedgerTestCase):
    """Owner puts 5000 in the bank, sells 1000 for cash and pays 300 rent."""

    def setUp(self):
        super().setUp()
        self.voucher([line(self.bank, debit=5000), line(self.capital, credit=5000)],
                     date=datetime.date(2025, 1, 10))
        self.sale(1000, date=datetime.date(2025, 3, 1))
        self.pay_rent(300, date=datetime.date(2025, 3, 1))


class ProfitAndLossTests(StatementTestCase):

    def test_totals_and_profit(self):
        report = profit_and_loss(self.business, self.year)

        self.assertEqual(report["income_total"], Decimal("1000.00"))
        self.assertEqual(report["expense_total"], Decimal("300.00"))
        self.assertEqual(report["net_profit"], Decimal("700.00"))
        # rent is an indirect expense
        self.assertEqual(report["gross_profit"], Decimal("1000.00"))
        self.assertEqual(report["income_groups"][0]["group"].name, "Income")
        self.assertEqual(report["income_groups"][0]["balance"], Decimal("1000.00"))

    def test_window_outside_activity_is_empty(self):
        report = profit_and_loss(self.business, self.year, from_date=datetime.date(2025, 2, 1),
                                 to_date=datetime.date(2025, 2, 28))
        self.assertEqual(report["net_profit"], Decimal("0.00"))

    def test_previous_month_comparison(self):
        report = profit_and_loss(self.business, self.year, *APRIL, compare="previous_month")

        self.assertEqual(report["net_profit"], Decimal("0.00"))
        comparative = report["comparative"]
        self.assertEqual((comparative["from_date"], comparative["to_date"]), MARCH)
        self.assertEqual(comparative["net_profit"], Decimal("700.00"))


class ComparativePeriodTests(LedgerTestCase):

    def test_shifts(self):
        self.assertEqual(comparative_period(self.year, *APRIL, "previous_month"),
                         (MARCH[0], MARCH[1], None))
        self.assertEqual(
            comparative_period(self.year, *APRIL, "previous_quarter"),
            (datetime.date(2025, 1, 1), datetime.date(2025, 1, 30), None))
        # no FY 2024 exists
        self.assertEqual(
            comparative_period(self.year, *APRIL, "previous_year"),
            (datetime.date(2024, 4, 1), datetime.date(2024, 4, 30), None))

    def test_unknown_period(self):
        with self.assertRaises(ValidationError):
            comparative_period(self.year, *APRIL, "previous_decade")


class BalanceSheetTests(StatementTestCase):

    def test_assets_equal_liabilities_plus_equity(self):
        report = balance_sheet(self.business, financial_year=self.year)

        self.assertEqual(report["asset_total"], Decimal("5700.00"))
        self.assertEqual(report["liability_total"], Decimal("0.00"))
        self.assertEqual(report["net_profit"], Decimal("700.00"))
        self.assertEqual(report["equity_total"], Decimal("5700.00"))
        self.assertEqual(report["difference"], Decimal("0.00"))

    def test_position_before_trading(self):
        report = balance_sheet(self.business, as_of=datetime.date(2025, 2, 1),
                               financial_year=self.year)
        self.assertEqual(report["asset_total"], Decimal("5000.00"))
        self.assertEqual(report["net_profit"], Decimal("0.00"))
        self.assertEqual(report["difference"], Decimal("0.00"))


class CashFlowTests(StatementTestCase):

    def test_full_year(self):
        report = cash_flow(self.business, self.year)

        self.assertEqual(report["opening_balance"], Decimal("0.00"))
        self.assertEqual(report["closing_balance"], Decimal("5700.00"))
        self.assertEqual(report["net_change"], Decimal("5700.00"))
        self.assertEqual(report["net_profit"], Decimal("700.00"))
        self.assertEqual([row["account"] for row in report["accounts"]], [self.cash, self.bank])

    def test_window_carries_opening_forward(self):
        report = cash_flow(self.business, self.year, from_date=datetime.date(2025, 3, 2))

        self.assertEqual(report["opening_balance"], Decimal("5700.00"))
        self.assertEqual(report["net_change"], Decimal("0.00"))


class LedgerStatementTests(StatementTestCase):

    def test_running_balance(self):
        report = ledger_statement(self.cash, datetime.date(2025, 1, 1), datetime.date(2025, 12, 31))

        self.assertEqual([row["running_balance"] for row in report["lines"]],
                         [Decimal("1000.00"), Decimal("700.00")])
        self.assertEqual(report["closing_balance"], Decimal("700.00"))
        self.assertEqual(report["closing_balance_type"], "debit")

    def test_running_balance_flips_when_crossing_zero(self):
        self.pay_rent(1500, date=datetime.date(2025, 3, 2))

        report = ledger_statement(self.cash, datetime.date(2025, 1, 1), datetime.date(2025, 12, 31))
        last = report["lines"][-1]
        self.assertEqual((last["running_balance"], last["running_type"]),
                         (Decimal("800.00"), "credit"))
        self.assertEqual(report["total_credit"], Decimal("1800.00"))

    def test_from_date_starts_from_carried_balance(self):
        report = ledger_statement(self.cash, datetime.date(2025, 3, 2), datetime.date(2025, 12, 31))

        self.assertEqual(report["opening_balance"], Decimal("700.00"))
        self.assertEqual(report["lines"], [])
        self.assertEqual(report["closing_balance"], Decimal("700.00"))


class DashboardTests(StatementTestCase):

    def test_monthly_series(self):
        series = monthly_series(self.year)

        self.assertEqual(len(series), 12)
        march = series[2]
        self.assertEqual(march["month"], "2025-03")
        self.assertEqual((march["income"], march["expense"], march["net"]),
                         (Decimal("1000.00"), Decimal("300.00"), Decimal("700.00")))
        self.assertEqual(series[0]["net"], Decimal("0.00"))

    def test_summary(self):
        summary = dashboard_summary(self.business, self.year)

        self.assertEqual(summary["total_income"], Decimal("1000.00"))
        self.assertEqual(summary["net_profit"], Decimal("700.00"))
        self.assertEqual(summary["total_assets"], Decimal("5700.00"))
        self.assertEqual(len(summary["recent_vouchers"]), 3)
        kinds = {row["kind"]: row["balance"] for row in summary["cash_and_bank"]}
        self.assertEqual(kinds, {"cash": Decimal("700.00"), "bank": Decimal("5000.00")})


class RatioTests(StatementTestCase):

    def test_ratios(self):
        ratios = financial_ratios(self.business, as_of=datetime.date(2025, 12, 31),
                                  financial_year=self.year)

        self.assertEqual(ratios["net_profit_margin"], Decimal("70"))
        self.assertEqual(ratios["gross_profit_margin"], Decimal("100"))
        self.assertEqual(ratios["return_on_equity"], Decimal("14"))
        self.assertEqual(ratios["debt_ratio"], Decimal("0"))

    def test_zero_denominators_give_none(self):
        ratios = financial_ratios(self.business, as_of=datetime.date(2025, 12, 31),
                                  financial_year=self.year)

        # no liabilities and no cost of sales were booked
        self.assertIsNone(ratios["current_ratio"])
        self.assertIsNone(ratios["cash_ratio"])
        self.assertIsNone(ratios["days_payables_outstanding"])


@pytest.mark.django_db
def test_reports_on_an_empty_business(business, financial_year):
    report = profit_and_loss(business)
    assert report["financial_year"] == financial_year
    assert report["net_profit"] == 0
    assert balance_sheet(business)["difference"] == 0
    assert financial_ratios(business, as_of=financial_year.end_date)["net_profit_margin"] is None
