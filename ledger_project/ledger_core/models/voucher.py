import hashlib
import json
from decimal import ROUND_HALF_UP, Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .business import Business
from .cost_center import CostCenter
from .financial_year import FinancialYear
from .ledger_account import LedgerAccount

VOUCHER_NATURES = [
    ("receipt", "Receipt"),
    ("payment", "Payment"),
    ("contra", "Contra"),
    ("journal", "Journal"),
    ("sales", "Sales"),
    ("purchase", "Purchase"),
    ("debit_note", "Debit Note"),
    ("credit_note", "Credit Note"),
]

CENT = Decimal("0.01")


def to_money(value):
    """Quantize anything numeric to 2 decimal places (ROUND_HALF_UP)."""
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


# ---------- VoucherType ----------
class VoucherType(models.Model):
    """Numbering sequence and nature for a family of vouchers."""

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    name = models.CharField(max_length=100)  # "Payment Voucher"
    code = models.CharField(max_length=16)  # "PMT"
    nature = models.CharField(max_length=12, choices=VOUCHER_NATURES)
    prefix = models.CharField(max_length=16, blank=True, default="")
    # when False callers must supply voucher numbers themselves
    auto_increment = models.BooleanField(default=True)
    starting_number = models.PositiveIntegerField(default=1)
    is_system = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["business", "code"], name="uq_business_voucher_type_code"
            )
        ]
        ordering = ("name",)

    def __str__(self):
        return f"{self.code} {self.name}"


# ---------- Voucher (Header) & VoucherItem ----------
class Voucher(models.Model):
    """
    Transaction capture unit. Items must balance; when is_posted the
    items are mirrored 1:1 into JournalEntry rows.
    """

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    voucher_type = models.ForeignKey(
        VoucherType, on_delete=models.PROTECT, related_name="vouchers")
    financial_year = models.ForeignKey(
        FinancialYear,
        on_delete=models.PROTECT,  # Prevent breaking historical ledger
        related_name="vouchers",
    )
    voucher_number = models.CharField(max_length=50)
    date = models.DateField()
    party = models.ForeignKey(
        "Party",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="vouchers",
    )
    narration = models.TextField(blank=True, default="")
    reference = models.CharField(max_length=200, blank=True, default="")
    is_posted = models.BooleanField(default=False)
    total_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    # Audit fields; identity is supplied by the caller
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    # sha256 of the item payload the journal was last generated from
    posting_fingerprint = models.CharField(
        max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["business", "date"], name="ledger_core_busines_vo01_idx"),
            models.Index(fields=["business", "party"], name="ledger_core_busines_vo02_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["business", "voucher_type", "financial_year", "voucher_number"],
                name="uq_voucher_number",
            )
        ]
        ordering = ("date", "id")

    def __str__(self):
        state = "posted" if self.is_posted else "draft"
        return f"{self.voucher_number} {self.date} [{state}]"

    def compute_totals(self):
        """Return (debits, credits) summed over the saved items."""
        aggs = self.items.aggregate(
            total_debit=models.Sum("debit_amount"),
            total_credit=models.Sum("credit_amount"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )

    def is_balanced(self):
        debit, credit = self.compute_totals()
        return to_money(debit) == to_money(credit)

    def _posting_payload(self):
        """Deterministic JSON snapshot of what the journal is built from.

        Same data in, same string out, so two generations of an unchanged
        voucher produce the same fingerprint.
        """
        items = [
            {
                "acct": item.ledger_account_id,
                "cc": item.cost_center_id,
                "debit": str(item.debit_amount),
                "credit": str(item.credit_amount),
                "desc": item.narration or "",
            }
            for item in self.items.order_by("sequence", "id")
        ]
        payload = {
            "business": self.business_id,
            "year": self.financial_year_id,
            "date": self.date.isoformat(),
            "items": items,
        }
        return json.dumps(payload, separators=(",", ":"), sort_keys=True)

    def fingerprint(self):
        return hashlib.sha256(self._posting_payload().encode()).hexdigest()

    def clean(self):
        """Enforce business consistency (multi-tenancy) and the year range"""
        for field in ("voucher_type", "financial_year", "party"):
            related = getattr(self, field, None)
            if related is not None and related.business_id != self.business_id:
                raise ValidationError(
                    f"Voucher.{field} must belong to the same business.")
        if self.financial_year_id and self.date and not self.financial_year.contains(self.date):
            raise ValidationError(
                f"Voucher date {self.date} is outside financial year "
                f"{self.financial_year}."
            )

    def save(self, *args, **kwargs):
        self.total_amount = to_money(self.total_amount)
        # partial saves (fingerprint, flags) skip the full validation pass
        if not kwargs.get("update_fields"):
            self.full_clean()
        return super().save(*args, **kwargs)


class VoucherItem(models.Model):
    """One debit or credit line of a voucher."""

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    voucher = models.ForeignKey(
        Voucher, on_delete=models.CASCADE, related_name="items")
    ledger_account = models.ForeignKey(
        LedgerAccount, on_delete=models.PROTECT, related_name="voucher_items")
    # deletion of a used cost center is blocked by a pre_delete guard
    cost_center = models.ForeignKey(
        CostCenter,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="voucher_items",
    )
    debit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    credit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    narration = models.TextField(blank=True, default="")
    sequence = models.PositiveIntegerField(default=0)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["business", "ledger_account"], name="ledger_core_busines_vi01_idx"),
            models.Index(fields=["business", "cost_center"], name="ledger_core_busines_vi02_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(debit_amount__gte=0) &
                    models.Q(credit_amount__gte=0)
                ),
                name="vi_non_negative_amounts",
            ),
            models.CheckConstraint(
                condition=~(models.Q(debit_amount=0) &
                            models.Q(credit_amount=0)),
                name="vi_debit_or_credit_nonzero",
            ),
        ]
        ordering = ("sequence", "id")

    def __str__(self):
        return (f"{self.voucher_id} | {self.ledger_account} | "
                f"D:{self.debit_amount} C:{self.credit_amount}")

    def clean(self):
        if self.debit_amount < 0 or self.credit_amount < 0:
            raise ValidationError("Debit and credit must be >= 0")
        if self.debit_amount > 0 and self.credit_amount > 0:
            raise ValidationError(
                "VoucherItem should not have both debit and credit > 0")
        if self.debit_amount == 0 and self.credit_amount == 0:
            raise ValidationError(
                "VoucherItem requires a non-0 amount on either debit or credit")
        if self.voucher_id and self.voucher.business_id != self.business_id:
            raise ValidationError(
                "VoucherItem.business must equal Voucher.business")
        if self.ledger_account_id and self.ledger_account.business_id != self.business_id:
            raise ValidationError(
                "VoucherItem.ledger_account must belong to the same business.")
        if self.cost_center_id and self.cost_center.business_id != self.business_id:
            raise ValidationError(
                "VoucherItem.cost_center must belong to the same business.")

    def save(self, *args, **kwargs):
        # copy business from the voucher when the caller left it out
        if not self.business_id and self.voucher_id:
            self.business_id = self.voucher.business_id
        self.debit_amount = to_money(self.debit_amount)
        self.credit_amount = to_money(self.credit_amount)
        self.full_clean()
        return super().save(*args, **kwargs)
