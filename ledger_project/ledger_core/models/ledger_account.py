from decimal import ROUND_HALF_UP, Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .account_group import AccountGroup
from .business import Business

BALANCE_TYPES = [
    ("debit", "Debit"),
    ("credit", "Credit"),
]


class LedgerAccount(models.Model):
    """
    Leaf of the chart of accounts; the thing journal entries point at.
    - code is unique per business (optional)
    - nature comes from the account group
    - opening balance is folded into every balance computation
    """

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    account_group = models.ForeignKey(
        AccountGroup,
        on_delete=models.PROTECT,  # groups with accounts can't be deleted
        related_name="ledger_accounts",
    )
    code = models.CharField(max_length=32, null=True, blank=True)
    name = models.CharField(max_length=200)  # "Cash on Hand", "Sales"

    # Balance brought forward when the books were opened
    opening_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    opening_balance_type = models.CharField(
        max_length=6, choices=BALANCE_TYPES, default="debit")

    # Cash/bank flags drive cash-flow reports and reconciliation eligibility
    is_bank_account = models.BooleanField(default=False)
    is_cash_account = models.BooleanField(default=False)
    bank_name = models.CharField(max_length=200, blank=True, default="")
    account_number = models.CharField(max_length=50, blank=True, default="")
    is_system = models.BooleanField(default=False)
    # "soft deactivate" without deleting history
    is_active = models.BooleanField(default=True)
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["business", "account_group"], name="ledger_core_busines_la01_idx"),
            models.Index(fields=["business", "code"], name="ledger_core_busines_la02_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["business", "code"], name="uq_business_ledger_code"
            ),
            models.CheckConstraint(
                condition=models.Q(opening_balance__gte=0),
                name="ledger_opening_balance_non_negative",
            ),
        ]
        ordering = ("code", "name")

    def __str__(self):
        return f"{self.code} – {self.name}" if self.code else self.name

    @property
    def nature(self):
        return self.account_group.nature

    def clean(self):
        if self.account_group_id and self.account_group.business_id != self.business_id:
            raise ValidationError(
                "AccountGroup must belong to the same business as LedgerAccount.")
        if self.opening_balance is not None and self.opening_balance < 0:
            raise ValidationError(
                "Opening balance must be >= 0; use opening_balance_type for the side.")

    def save(self, *args, **kwargs):
        self.opening_balance = Decimal(self.opening_balance or 0).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        self.full_clean()
        return super().save(*args, **kwargs)
