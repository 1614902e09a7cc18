from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .business import Business


# ---------- FinancialYear (accounting period) ----------
class FinancialYear(models.Model):
    """
    Date range the books are kept in.
    - ranges never overlap inside one business
    - exactly one year is current
    - a locked year rejects every voucher mutation
    """

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    name = models.CharField(max_length=50)  # "FY 2025-26"
    start_date = models.DateField()
    end_date = models.DateField()
    is_current = models.BooleanField(default=False)
    # When is_locked=True vouchers in the range can't be created, edited,
    # posted, unposted or deleted
    is_locked = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["business", "start_date"], name="ledger_core_busines_fy01_idx"),
            models.Index(fields=["business", "is_current"], name="ledger_core_busines_fy02_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["business", "name"], name="uq_business_year_name"),
            # at most one current year per business
            models.UniqueConstraint(
                fields=["business"],
                condition=models.Q(is_current=True),
                name="uq_business_current_year",
            ),
        ]
        ordering = ("business", "start_date")

    def __str__(self):
        return f"{self.name} ({self.start_date} – {self.end_date})"

    def clean(self):
        if self.start_date >= self.end_date:
            raise ValidationError("start_date must be before end_date")
        overlapping = FinancialYear.objects.filter(
            business_id=self.business_id,
            start_date__lte=self.end_date,
            end_date__gte=self.start_date,
        ).exclude(pk=self.pk)
        if overlapping.exists():
            raise ValidationError(
                "Financial year overlaps with an existing financial year.")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def contains(self, date):
        return self.start_date <= date <= self.end_date
