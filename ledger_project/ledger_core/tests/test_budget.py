import datetime
from decimal import Decimal
from django.core.exceptions import ValidationError
from django.forms.models import inlineformset_factory
from ledger_core.admin.forms import BudgetItemFormSet, BudgetItemInlineForm
from ledger_core.models import Budget, BudgetItem
from ..services.budget import (add_or_update_item, create_budget, monthly_comparison,
                               variance_report)
from .helpers import LedgerTestCase


class BudgetLineTests(LedgerTestCase):

    def setUp(self):
        super().setUp()
        self.budget = create_budget(self.business, self.year, "Operating 2025", user=self.user)

    def test_even_distribution_rounds_each_month(self):
        item = add_or_update_item(self.budget, self.rent, annual_amount=Decimal("1000"))

        self.assertEqual(item.annual_amount, Decimal("1000.00"))
        self.assertEqual(item.january, Decimal("83.33"))
        self.assertEqual(item.december, Decimal("83.33"))

    def test_manual_months_define_the_annual_amount(self):
        item = add_or_update_item(
            self.budget, self.rent, distribute_evenly=False,
            months={"january": Decimal("100"), "march": Decimal("50")})

        self.assertEqual(item.annual_amount, Decimal("150.00"))
        self.assertEqual(item.february, Decimal("0.00"))

        with self.assertRaises(ValidationError):
            add_or_update_item(self.budget, self.rent, distribute_evenly=False,
                               months=[Decimal("10")] * 11)

    def test_same_account_and_cost_center_replaces_the_line(self):
        add_or_update_item(self.budget, self.rent, annual_amount=Decimal("1200"))
        item = add_or_update_item(self.budget, self.rent, annual_amount=Decimal("2400"))

        self.assertEqual(BudgetItem.objects.filter(budget=self.budget).count(), 1)
        self.assertEqual(item.march, Decimal("200.00"))

    def test_balance_sheet_accounts_cannot_be_budgeted(self):
        with self.assertRaises(ValidationError):
            add_or_update_item(self.budget, self.cash, annual_amount=Decimal("500"))
        with self.assertRaises(ValidationError):
            add_or_update_item(self.budget, self.capital, annual_amount=Decimal("500"))


class BudgetVarianceTests(LedgerTestCase):

    def setUp(self):
        super().setUp()
        self.budget = create_budget(self.business, self.year, "Operating 2025")
        add_or_update_item(self.budget, self.rent, annual_amount=Decimal("1200"))
        add_or_update_item(self.budget, self.sales, annual_amount=Decimal("5000"))
        self.pay_rent(300, date=datetime.date(2025, 3, 1))
        self.sale(1000, date=datetime.date(2025, 4, 1))

    def test_variance_per_line_and_totals(self):
        report = variance_report(self.budget)
        rows = {row["item"].ledger_account: row for row in report["rows"]}

        rent = rows[self.rent]
        self.assertEqual(rent["actual"], Decimal("300.00"))
        self.assertEqual(rent["variance"], Decimal("900.00"))
        self.assertEqual(rent["variance_percentage"], Decimal("75.00"))
        # income actuals are credit minus debit
        self.assertEqual(rows[self.sales]["actual"], Decimal("1000.00"))
        self.assertEqual(rows[self.sales]["variance_percentage"], Decimal("80.00"))

        self.assertEqual(report["total_budget"], Decimal("6200.00"))
        self.assertEqual(report["total_actual"], Decimal("1300.00"))
        self.assertEqual(report["total_variance"], Decimal("4900.00"))

    def test_as_of_limits_actuals(self):
        self.pay_rent(100, date=datetime.date(2025, 7, 1))

        report = variance_report(self.budget, as_of=datetime.date(2025, 6, 30))
        rent = next(row for row in report["rows"] if row["item"].ledger_account == self.rent)
        self.assertEqual(rent["actual"], Decimal("300.00"))
        self.assertEqual(report["to_date"], datetime.date(2025, 6, 30))

    def test_drafts_do_not_count(self):
        self.pay_rent(999, is_posted=False)

        report = variance_report(self.budget)
        self.assertEqual(report["total_actual"], Decimal("1300.00"))

    def test_monthly_comparison(self):
        rows = monthly_comparison(self.budget)

        self.assertEqual(len(rows), 12)
        self.assertEqual([row["month"] for row in rows][:3], ["january", "february", "march"])
        march = rows[2]
        self.assertEqual(march["budget"], Decimal("100.00") + Decimal("416.67"))
        self.assertEqual(march["actual"], Decimal("300.00"))
        self.assertEqual(rows[3]["actual"], Decimal("1000.00"))
        self.assertEqual(rows[0]["actual"], Decimal("0.00"))


class BudgetItemAdminFormTests(LedgerTestCase):

    def setUp(self):
        super().setUp()
        self.budget = create_budget(self.business, self.year, "Operating 2025")

    def form(self, account, annual="1200"):
        return BudgetItemInlineForm(
            data={"ledger_account": account.pk, "cost_center": "", "annual_amount": annual,
                  "distribute_evenly": "on", "notes": ""},
            instance=BudgetItem(budget=self.budget),
        )

    def test_even_spread_is_applied_on_clean(self):
        form = self.form(self.rent)
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.instance.june, Decimal("100.00"))

    def test_balance_sheet_account_is_not_offered(self):
        form = self.form(self.cash)
        self.assertFalse(form.is_valid())
        self.assertIn("ledger_account", form.errors)

    def test_manual_months_set_the_annual_amount(self):
        form = BudgetItemInlineForm(
            data={"ledger_account": self.rent.pk, "cost_center": "", "annual_amount": "1200",
                  "january": "100", "march": "50", "notes": ""},
            instance=BudgetItem(budget=self.budget),
        )
        self.assertTrue(form.is_valid(), form.errors)
        item = form.save()

        item.refresh_from_db()
        self.assertEqual(item.annual_amount, Decimal("150.00"))
        self.assertEqual(sum(item.month_amounts()), item.annual_amount)
        self.assertFalse(item.distribute_evenly)

    def test_second_line_for_the_same_account_is_rejected(self):
        add_or_update_item(self.budget, self.rent, annual_amount=Decimal("1200"))
        existing = BudgetItem.objects.get(budget=self.budget)
        ItemFormSet = inlineformset_factory(Budget, BudgetItem, form=BudgetItemInlineForm,
                                            formset=BudgetItemFormSet)
        data = {
            "items-TOTAL_FORMS": "2", "items-INITIAL_FORMS": "1",
            "items-MIN_NUM_FORMS": "0", "items-MAX_NUM_FORMS": "1000",
            "items-0-id": existing.pk, "items-0-budget": self.budget.pk,
            "items-0-ledger_account": self.rent.pk, "items-0-annual_amount": "1200",
            "items-0-distribute_evenly": "on",
            "items-1-budget": self.budget.pk,
            "items-1-ledger_account": self.rent.pk, "items-1-annual_amount": "600",
            "items-1-distribute_evenly": "on",
        }

        formset = ItemFormSet(data, instance=self.budget)
        self.assertFalse(formset.is_valid())
        self.assertEqual(BudgetItem.objects.filter(budget=self.budget).count(), 1)

    def test_duplicate_line_is_refused_on_save(self):
        add_or_update_item(self.budget, self.rent, annual_amount=Decimal("1200"))

        with self.assertRaises(ValidationError):
            BudgetItem(budget=self.budget, ledger_account=self.rent,
                       annual_amount=Decimal("600")).save()

    def test_two_new_lines_for_the_same_account_are_rejected(self):
        ItemFormSet = inlineformset_factory(Budget, BudgetItem, form=BudgetItemInlineForm,
                                            formset=BudgetItemFormSet)
        data = {
            "items-TOTAL_FORMS": "2", "items-INITIAL_FORMS": "0",
            "items-MIN_NUM_FORMS": "0", "items-MAX_NUM_FORMS": "1000",
        }
        for index, annual in enumerate(("1200", "600")):
            data.update({
                f"items-{index}-budget": self.budget.pk,
                f"items-{index}-ledger_account": self.rent.pk,
                f"items-{index}-annual_amount": annual,
                f"items-{index}-distribute_evenly": "on",
            })

        formset = ItemFormSet(data, instance=self.budget)
        self.assertFalse(formset.is_valid())
        self.assertTrue(formset.non_form_errors())
