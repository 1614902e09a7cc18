from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .business import Business
from .journal import JournalEntry
from .ledger_account import LedgerAccount


class AccountReconciliation(models.Model):
    """Match a bank account's journal entries against a statement balance."""

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    ledger_account = models.ForeignKey(
        LedgerAccount, on_delete=models.CASCADE, related_name="reconciliations")
    statement_date = models.DateField()
    statement_balance = models.DecimalField(max_digits=18, decimal_places=2)
    # book balance at statement_date, cached for display
    account_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # Σdebit - Σcredit of the linked entries
    reconciled_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    notes = models.TextField(blank=True, default="")
    is_completed = models.BooleanField(default=False)
    completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL,
        related_name="+",
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["business", "ledger_account", "statement_date"], name="ledger_core_busines_ar01_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["ledger_account", "statement_date"],
                name="uq_reconciliation_account_date",
            )
        ]
        ordering = ("-statement_date",)

    def __str__(self):
        return f"{self.ledger_account} @ {self.statement_date}"

    @property
    def difference(self):
        return self.statement_balance - self.reconciled_balance

    def recalculate_reconciled_balance(self):
        """Recompute reconciled_balance from the linked entries and save it."""
        aggs = JournalEntry.objects.filter(
            reconciliation_item__reconciliation=self
        ).aggregate(
            debit=models.Sum("debit_amount"),
            credit=models.Sum("credit_amount"),
        )
        self.reconciled_balance = (aggs["debit"] or Decimal("0.00")) - (
            aggs["credit"] or Decimal("0.00"))
        self.save(update_fields=["reconciled_balance"])
        return self.reconciled_balance

    def clean(self):
        if self.ledger_account_id:
            if self.ledger_account.business_id != self.business_id:
                raise ValidationError(
                    "Reconciliation account must belong to the same business.")
            if not self.ledger_account.is_bank_account:
                raise ValidationError(
                    "Only bank accounts can be reconciled.")

    def save(self, *args, **kwargs):
        if not kwargs.get("update_fields"):
            self.full_clean()
        return super().save(*args, **kwargs)


class ReconciliationItem(models.Model):
    """Link between a reconciliation and one journal entry."""

    reconciliation = models.ForeignKey(
        AccountReconciliation, on_delete=models.CASCADE, related_name="items")
    # one-to-one: an entry is reconciled at most once, across all reconciliations
    journal_entry = models.OneToOneField(
        JournalEntry, on_delete=models.CASCADE, related_name="reconciliation_item")
    is_reconciled = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.reconciliation_id} ↔ JE {self.journal_entry_id}"
