from django.db import transaction
from ..models import JournalEntry


# ----------------------------
# Journal generation
# ----------------------------
def clear_journal_entries(voucher):
    """Remove every ledger row of ``voucher``. Returns the number removed."""
    deleted, _ = JournalEntry.objects.filter(voucher=voucher).delete()
    return deleted


@transaction.atomic
def generate_journal_entries(voucher):
    """
    Mirror each item of a posted voucher into one JournalEntry.

    Regeneration is delete-then-recreate, so running it twice on an
    unchanged voucher leaves the same set of rows. Draft vouchers get no
    rows at all.
    """
    clear_journal_entries(voucher)
    if not voucher.is_posted:
        voucher.posting_fingerprint = None
        voucher.save(update_fields=["posting_fingerprint"])
        return []

    entries = []
    for item in voucher.items.order_by("sequence", "id"):
        entries.append(
            JournalEntry.objects.create(
                business_id=voucher.business_id,
                voucher=voucher,
                voucher_item=item,
                ledger_account_id=item.ledger_account_id,
                cost_center_id=item.cost_center_id,
                financial_year_id=voucher.financial_year_id,
                date=voucher.date,
                debit_amount=item.debit_amount,
                credit_amount=item.credit_amount,
                narration=item.narration or voucher.narration,
            )
        )

    # remember which payload the ledger now reflects
    voucher.posting_fingerprint = voucher.fingerprint()
    voucher.save(update_fields=["posting_fingerprint"])
    return entries


def journal_matches_voucher(voucher):
    """True when the ledger rows were generated from the voucher's current items."""
    if not voucher.is_posted:
        return not JournalEntry.objects.filter(voucher=voucher).exists()
    return voucher.posting_fingerprint == voucher.fingerprint()
