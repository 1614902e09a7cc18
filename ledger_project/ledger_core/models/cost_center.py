from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .account_group import _is_below
from .business import Business


class CostCenter(models.Model):
    """Optional tagging dimension for voucher items (department, project...)."""

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=32, null=True, blank=True)
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["business", "parent"], name="ledger_core_busines_cc01_idx")]
        constraints = [
            models.UniqueConstraint(
                fields=["business", "code"], name="uq_business_cost_center_code"
            )
        ]
        ordering = ("name",)

    def __str__(self):
        return f"{self.code} {self.name}" if self.code else self.name

    def clean(self):
        if self.parent_id is None:
            return
        if self.pk and self.parent_id == self.pk:
            raise ValidationError("A cost center cannot be its own parent.")
        if self.parent.business_id != self.business_id:
            raise ValidationError(
                "Parent & child cost centers must belong to the same business.")
        if self.pk and _is_below(self.parent, self.pk):
            raise ValidationError(
                "A cost center cannot be moved under one of its descendants.")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
