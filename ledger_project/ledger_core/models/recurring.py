from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .business import Business
from .voucher import VoucherType, to_money

FREQUENCIES = [
    ("daily", "Daily"),
    ("weekly", "Weekly"),
    ("monthly", "Monthly"),
    ("quarterly", "Quarterly"),
    ("yearly", "Yearly"),
]


class RecurringTransaction(models.Model):
    """
    Schedule + item template that materializes posted vouchers when due.

    template is an ordered list of
    {"ledger_account_id", "cost_center_id", "debit_amount", "credit_amount", "narration"}
    """

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    voucher_type = models.ForeignKey(
        VoucherType, on_delete=models.PROTECT, related_name="recurring_transactions")
    # debit total of the template, kept in step on save
    amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"), editable=False)
    narration = models.TextField(blank=True, default="")
    frequency = models.CharField(max_length=10, choices=FREQUENCIES)
    day_of_month = models.PositiveSmallIntegerField(null=True, blank=True)  # 1-31
    day_of_week = models.PositiveSmallIntegerField(null=True, blank=True)  # 0=Mon
    month = models.PositiveSmallIntegerField(null=True, blank=True)  # 1-12
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    last_generated_date = models.DateField(null=True, blank=True)
    occurrences = models.PositiveIntegerField(null=True, blank=True)
    occurrences_generated = models.PositiveIntegerField(default=0)
    template = models.JSONField(default=list)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["business", "frequency", "start_date"], name="ledger_core_busines_rt01_idx")]

    def __str__(self):
        return f"{self.name} ({self.frequency})"

    def template_totals(self):
        debit = sum((to_money(row.get("debit_amount")) for row in self.template), Decimal("0.00"))
        credit = sum((to_money(row.get("credit_amount")) for row in self.template), Decimal("0.00"))
        return debit, credit

    def template_is_balanced(self):
        debit, credit = self.template_totals()
        return bool(self.template) and debit == credit

    def clean(self):
        if self.voucher_type_id and self.voucher_type.business_id != self.business_id:
            raise ValidationError(
                "RecurringTransaction.voucher_type must belong to the same business.")
        if self.end_date and self.end_date < self.start_date:
            raise ValidationError("end_date must not be before start_date")
        if self.day_of_month is not None and not 1 <= self.day_of_month <= 31:
            raise ValidationError("day_of_month must be between 1 and 31")
        if self.day_of_week is not None and not 0 <= self.day_of_week <= 6:
            raise ValidationError("day_of_week must be between 0 (Monday) and 6")
        if self.month is not None and not 1 <= self.month <= 12:
            raise ValidationError("month must be between 1 and 12")
        if not isinstance(self.template, list):
            raise ValidationError("template must be a list of items")
        for row in self.template:
            if not isinstance(row, dict) or "ledger_account_id" not in row:
                raise ValidationError(
                    "Each template item needs a ledger_account_id.")

    def save(self, *args, **kwargs):
        self.full_clean()
        self.amount = self.template_totals()[0]
        return super().save(*args, **kwargs)
