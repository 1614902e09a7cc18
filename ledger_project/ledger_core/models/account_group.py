from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .business import Business

# Accounting classification; decides which side a balance normally sits on
NATURES = [
    ("assets", "Assets"),
    ("liabilities", "Liabilities"),
    ("income", "Income"),
    ("expense", "Expense"),
    ("equity", "Equity"),
]

# Natures whose balance is debit - credit; the rest are credit - debit
DEBIT_NATURES = ("assets", "expense")


def _is_below(node, ancestor_pk):
    """True when ``ancestor_pk`` appears on the parent chain starting at ``node``."""
    seen = set()
    while node is not None and node.pk not in seen:
        if node.pk == ancestor_pk:
            return True
        seen.add(node.pk)
        node = node.parent
    return False


class AccountGroup(models.Model):
    """
    Node of the chart-of-accounts tree.
    - nature is shared by a whole subtree
    - sequence orders siblings in reports and selection lists
    - system groups are seeded at bootstrap and are read-only
    """

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,  # can't delete a parent while children exist
        related_name="children",
    )
    name = models.CharField(max_length=200)
    nature = models.CharField(max_length=12, choices=NATURES)
    # Direct income/expense groups feed the gross-profit section of P&L
    affects_gross_profit = models.BooleanField(default=False)
    sequence = models.PositiveIntegerField(default=0)
    is_system = models.BooleanField(default=False)
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["business", "parent"], name="ledger_core_busines_ag01_idx"),
            models.Index(fields=["business", "nature"], name="ledger_core_busines_ag02_idx"),
        ]
        ordering = ("sequence", "name")

    def __str__(self):
        return f"{self.name} ({self.nature})"

    def clean(self):
        if self.parent_id is None:
            return
        if self.pk and self.parent_id == self.pk:
            raise ValidationError("An account group cannot be its own parent.")
        if self.parent.business_id != self.business_id:
            raise ValidationError(
                "Parent & child groups must belong to the same business.")
        if self.parent.nature != self.nature:
            raise ValidationError(
                f"Nature '{self.nature}' does not match parent nature "
                f"'{self.parent.nature}'."
            )
        if self.pk and _is_below(self.parent, self.pk):
            raise ValidationError(
                "An account group cannot be moved under one of its descendants.")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)

    @property
    def is_debit_nature(self):
        return self.nature in DEBIT_NATURES
