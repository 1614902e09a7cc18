import logging
from django.core.exceptions import ValidationError
from django.db import transaction
from ..exceptions import ImbalancedVoucherError
from ..models import Voucher
from .audit_helper import log_action
from .journal import clear_journal_entries, generate_journal_entries
from .validation import ensure_not_in_completed_reconciliation, ensure_year_unlocked
from .vouchers import delete_voucher

logger = logging.getLogger(__name__)


# ----------------------------
# Posting state machine
# ----------------------------
# draft (is_posted=False) <-> posted; either state may be deleted
ALLOWED_TRANSITIONS = {
    "draft": ["posted", "deleted"],
    "posted": ["draft", "deleted"],
}


def voucher_state(voucher):
    return "posted" if voucher.is_posted else "draft"


def post_voucher(voucher, user=None):
    """
    Wraps the posting rules with transaction management:
    lock the voucher, refuse locked years and imbalanced items,
    flip is_posted and materialize the journal.
    """
    with transaction.atomic():
        # Lock the row to avoid two concurrent posts
        voucher = Voucher.objects.select_for_update().get(pk=voucher.pk)
        ensure_year_unlocked(voucher.financial_year)
        if voucher.is_posted:
            raise ValidationError(f"Voucher {voucher.voucher_number} is already posted.")
        if not voucher.items.exists():
            raise ImbalancedVoucherError("Voucher has no items to post.")
        if not voucher.is_balanced():
            debit, credit = voucher.compute_totals()
            raise ImbalancedVoucherError(
                f"Voucher not balanced: debits={debit}, credits={credit}")

        voucher.is_posted = True
        voucher.updated_by = user
        voucher.save(update_fields=["is_posted", "updated_by", "updated_at"])
        generate_journal_entries(voucher)
        log_action(action="post", instance=voucher, user=user)

    logger.info("voucher posted", extra={"voucher": voucher.pk})
    return voucher


def unpost_voucher(voucher, user=None):
    with transaction.atomic():
        voucher = Voucher.objects.select_for_update().get(pk=voucher.pk)
        ensure_year_unlocked(voucher.financial_year)
        ensure_not_in_completed_reconciliation(voucher)
        if not voucher.is_posted:
            raise ValidationError(f"Voucher {voucher.voucher_number} is not posted.")

        voucher.is_posted = False
        voucher.updated_by = user
        voucher.posting_fingerprint = None
        voucher.save(update_fields=[
            "is_posted", "updated_by", "updated_at", "posting_fingerprint"])
        clear_journal_entries(voucher)
        log_action(action="unpost", instance=voucher, user=user)

    logger.info("voucher unposted", extra={"voucher": voucher.pk})
    return voucher


def transition_to(voucher, new_state, user=None):
    """Move a voucher to ``new_state`` ("draft", "posted" or "deleted")."""
    current = voucher_state(voucher)
    if new_state not in ALLOWED_TRANSITIONS.get(current, []):
        raise ValidationError(f"Cannot go from {current} to {new_state}")

    if new_state == "posted":
        return post_voucher(voucher, user=user)
    if new_state == "draft":
        return unpost_voucher(voucher, user=user)

    delete_voucher(voucher, user=user)
    return None
