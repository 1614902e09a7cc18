from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import JournalEntryManager
from .business import Business
from .cost_center import CostCenter
from .financial_year import FinancialYear
from .ledger_account import LedgerAccount
from .voucher import Voucher, VoucherItem


# ---------- JournalEntry (the ledger) ----------
class JournalEntry(models.Model):
    """
    One immutable debit-or-credit row against a single ledger account.

    Rows are only ever created by journal generation from a posted voucher
    and only ever removed when that voucher is regenerated, unposted or
    deleted. Every balance and report reads from here.
    """

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    voucher = models.ForeignKey(
        Voucher, on_delete=models.CASCADE, related_name="journal_entries")
    # the item this row mirrors
    voucher_item = models.ForeignKey(
        VoucherItem,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="journal_entries",
    )
    ledger_account = models.ForeignKey(
        LedgerAccount, on_delete=models.PROTECT, related_name="journal_entries")
    cost_center = models.ForeignKey(
        CostCenter,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="journal_entries",
    )
    financial_year = models.ForeignKey(
        FinancialYear, on_delete=models.PROTECT, related_name="journal_entries")
    date = models.DateField()
    debit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    credit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    narration = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    objects = JournalEntryManager()

    class Meta:
        # "all rows for this account up to a date" is the hot query
        indexes = [
            models.Index(fields=["business", "ledger_account", "date"], name="ledger_core_busines_je01_idx"),
            models.Index(fields=["business", "financial_year"], name="ledger_core_busines_je02_idx"),
            models.Index(fields=["business", "cost_center"], name="ledger_core_busines_je03_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(debit_amount__gte=0) &
                    models.Q(credit_amount__gte=0)
                ),
                name="je_non_negative_amounts",
            ),
        ]
        ordering = ("date", "id")
        verbose_name_plural = "journal entries"

    def __str__(self):
        return (f"{self.date} | {self.ledger_account} | "
                f"D:{self.debit_amount} C:{self.credit_amount}")

    def clean(self):
        if self.ledger_account_id and self.ledger_account.business_id != self.business_id:
            raise ValidationError(
                "JournalEntry.ledger_account must belong to the same business.")
        if self.voucher_id and self.voucher.business_id != self.business_id:
            raise ValidationError(
                "JournalEntry.business must equal Voucher.business")

    def save(self, *args, **kwargs):
        # existing rows are never edited, only regenerated
        if not self._state.adding:
            raise ValidationError(
                "JournalEntry is immutable; change the voucher instead.")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "JournalEntry rows are removed by unposting or deleting their voucher.")
