from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .business import Business

# Known entity kinds an audit row or document may point at.
# Tagged variant: (kind, id) instead of a free-form class name.
TARGET_KINDS = [
    ("business", "Business"),
    ("account_group", "Account group"),
    ("ledger_account", "Ledger account"),
    ("cost_center", "Cost center"),
    ("financial_year", "Financial year"),
    ("voucher_type", "Voucher type"),
    ("voucher", "Voucher"),
    ("party", "Party"),
    ("reconciliation", "Account reconciliation"),
    ("budget", "Budget"),
    ("recurring_transaction", "Recurring transaction"),
]

# kind -> model name inside this app
TARGET_MODELS = {
    "business": "Business",
    "account_group": "AccountGroup",
    "ledger_account": "LedgerAccount",
    "cost_center": "CostCenter",
    "financial_year": "FinancialYear",
    "voucher_type": "VoucherType",
    "voucher": "Voucher",
    "party": "Party",
    "reconciliation": "AccountReconciliation",
    "budget": "Budget",
    "recurring_transaction": "RecurringTransaction",
}


def target_kind_for(instance):
    """Map a model instance to its target kind, or raise ValidationError."""
    name = instance.__class__.__name__
    for kind, model_name in TARGET_MODELS.items():
        if model_name == name:
            return kind
    raise ValidationError(f"{name} cannot be an audit/document target.")


def target_model(kind):
    from django.apps import apps

    try:
        return apps.get_model("ledger_core", TARGET_MODELS[kind])
    except KeyError:
        raise ValidationError(f"Unknown target kind '{kind}'.")


class TargetMixin(models.Model):
    target_kind = models.CharField(max_length=32, choices=TARGET_KINDS)
    target_id = models.BigIntegerField()

    class Meta:
        abstract = True

    @property
    def target(self):
        return target_model(self.target_kind).objects.filter(pk=self.target_id).first()


# ---------- Audit / Event log ----------
class AuditLog(TargetMixin):
    """Who did what to which ledger entity, with before/after values."""

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    # Nullable for automated actions (Celery jobs, management commands)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    action = models.CharField(max_length=50)  # create, update, delete, post...
    old_values = models.JSONField(null=True, blank=True)
    new_values = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["business", "target_kind", "target_id"], name="ledger_core_busines_al01_idx"),
            models.Index(fields=["business", "action"], name="ledger_core_busines_al02_idx"),
            models.Index(fields=["business", "user"], name="ledger_core_busines_al03_idx"),
        ]
        ordering = ("-created_at", "-id")

    def __str__(self):
        return f"{self.user} {self.action} {self.target_kind}({self.target_id})"
