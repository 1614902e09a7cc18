from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .business import Business
from .ledger_account import LedgerAccount

PARTY_TYPES = [
    ("customer", "Customer"),
    ("supplier", "Supplier"),
    ("both", "Both"),
]


class Party(models.Model):
    """Customer or supplier, backed by its own receivable/payable ledger account."""

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    ledger_account = models.OneToOneField(
        LedgerAccount,
        on_delete=models.PROTECT,  # the account is owned by the party
        related_name="party",
    )
    name = models.CharField(max_length=200)
    type = models.CharField(max_length=10, choices=PARTY_TYPES, default="customer")
    contact_person = models.CharField(max_length=200, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    address = models.TextField(blank=True, default="")
    tax_number = models.CharField(max_length=64, blank=True, default="")
    credit_limit = models.DecimalField(
        max_digits=18, decimal_places=2, null=True, blank=True)
    credit_period = models.PositiveIntegerField(
        null=True, blank=True)  # days
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["business", "type"], name="ledger_core_busines_pt01_idx")]
        verbose_name_plural = "parties"
        ordering = ("name",)

    def __str__(self):
        return f"{self.name} ({self.type})"

    @property
    def is_customer(self):
        return self.type in ("customer", "both")

    @property
    def is_supplier(self):
        return self.type in ("supplier", "both")

    def clean(self):
        if self.ledger_account_id and self.ledger_account.business_id != self.business_id:
            raise ValidationError(
                "Party.ledger_account must belong to the same business.")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
