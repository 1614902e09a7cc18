from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .business import Business
from .cost_center import CostCenter
from .financial_year import FinancialYear
from .ledger_account import LedgerAccount

MONTHS = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)


class Budget(models.Model):
    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    financial_year = models.ForeignKey(
        FinancialYear, on_delete=models.CASCADE, related_name="budgets")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["business", "financial_year", "name"],
                name="uq_budget_name_per_year",
            )
        ]

    def __str__(self):
        return f"{self.name} ({self.financial_year.name})"

    def clean(self):
        if self.financial_year_id and self.financial_year.business_id != self.business_id:
            raise ValidationError(
                "Budget.financial_year must belong to the same business.")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


def _month_field():
    return models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))


class BudgetItem(models.Model):
    """Planned amounts for one income/expense account (and optional cost center)."""

    budget = models.ForeignKey(Budget, on_delete=models.CASCADE, related_name="items")
    ledger_account = models.ForeignKey(
        LedgerAccount, on_delete=models.PROTECT, related_name="budget_items")
    cost_center = models.ForeignKey(
        CostCenter,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="budget_items",
    )
    annual_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    january = _month_field()
    february = _month_field()
    march = _month_field()
    april = _month_field()
    may = _month_field()
    june = _month_field()
    july = _month_field()
    august = _month_field()
    september = _month_field()
    october = _month_field()
    november = _month_field()
    december = _month_field()
    # True: annual / 12 overwrites the months; False: annual = Σ months
    distribute_evenly = models.BooleanField(default=True)
    notes = models.TextField(blank=True, default="")

    class Meta:
        indexes = [models.Index(fields=["budget", "ledger_account"], name="ledger_core_budget__bi01_idx")]
        # one line per account and cost center; "no cost center" counts as a value
        constraints = [
            models.UniqueConstraint(
                fields=["budget", "ledger_account", "cost_center"],
                nulls_distinct=False,
                name="uq_budget_item_account_center",
            )
        ]

    def __str__(self):
        return f"{self.budget_id} | {self.ledger_account} | {self.annual_amount}"

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def month_amounts(self):
        return [getattr(self, month) for month in MONTHS]
