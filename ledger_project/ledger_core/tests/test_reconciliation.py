import datetime
from decimal import Decimal
from unittest import mock
from django.core.exceptions import ValidationError
from ledger_core.models import AccountReconciliation, JournalEntry, ReconciliationItem
from ..exceptions import AlreadyReconciledError, ConflictError, NotFoundError
from ..services.posting import unpost_voucher
from ..services.reconciliation import (add_item, complete, delete_reconciliation,
                                       refresh_account_balance, remove_item, reopen,
                                       start_reconciliation, unreconciled_entries)
from ..services.vouchers import delete_voucher, update_voucher
from .helpers import LedgerTestCase, line

STATEMENT_DATE = datetime.date(2025, 3, 31)


class ReconciliationTests(LedgerTestCase):

    def setUp(self):
        super().setUp()
        self.deposit = self.voucher(
            [line(self.bank, debit=5000), line(self.capital, credit=5000)],
            date=datetime.date(2025, 3, 5))
        self.fee = self.voucher(
            [line(self.rent, debit=25), line(self.bank, credit=25)],
            date=datetime.date(2025, 3, 20))
        self.deposit_entry = JournalEntry.objects.get(voucher=self.deposit, ledger_account=self.bank)
        self.fee_entry = JournalEntry.objects.get(voucher=self.fee, ledger_account=self.bank)

    def start(self, statement_balance):
        return start_reconciliation(self.bank, STATEMENT_DATE, Decimal(statement_balance),
                                    user=self.user)

    def test_difference_within_tolerance_completes(self):
        rec = self.start("4999.99")
        rec = add_item(rec, self.deposit_entry)
        self.assertEqual(rec.reconciled_balance, Decimal("5000.00"))

        rec = complete(rec, user=self.user)
        self.assertTrue(rec.is_completed)
        self.assertEqual(rec.completed_by, self.user)
        self.assertIsNotNone(rec.completed_at)

    def test_difference_beyond_tolerance_fails(self):
        rec = self.start("4999.98")
        add_item(rec, self.deposit_entry)

        with self.assertRaises(ValidationError) as cm:
            complete(rec)
        self.assertEqual(cm.exception.code, "unreconciled_difference")
        rec.refresh_from_db()
        self.assertFalse(rec.is_completed)

    def test_reconciled_balance_nets_debits_and_credits(self):
        rec = self.start("4975")
        add_item(rec, self.deposit_entry)
        rec = add_item(rec, self.fee_entry)

        self.assertEqual(rec.reconciled_balance, Decimal("4975.00"))
        self.assertEqual(rec.difference, Decimal("0.00"))

    def test_only_bank_accounts_once_per_statement_date(self):
        with self.assertRaises(ValidationError):
            start_reconciliation(self.cash, STATEMENT_DATE, Decimal("0"))

        self.start("5000")
        with self.assertRaises(ConflictError):
            self.start("5000")

    def test_entry_is_reconciled_at_most_once(self):
        first = self.start("5000")
        add_item(first, self.deposit_entry)
        second = start_reconciliation(self.bank, datetime.date(2025, 4, 30), Decimal("5000"))

        with self.assertRaises(AlreadyReconciledError):
            add_item(second, self.deposit_entry)
        with self.assertRaises(AlreadyReconciledError):
            add_item(first, self.deposit_entry)

    def test_link_made_by_a_concurrent_reconciliation_is_reported(self):
        first = self.start("5000")
        add_item(first, self.deposit_entry)
        second = start_reconciliation(self.bank, datetime.date(2025, 4, 30), Decimal("5000"))

        # the pre-insert check misses the link; the one-to-one column catches it
        with mock.patch("ledger_core.services.reconciliation._ensure_not_linked"):
            with self.assertRaises(AlreadyReconciledError):
                add_item(second, self.deposit_entry)

        self.assertEqual(
            ReconciliationItem.objects.get(journal_entry=self.deposit_entry).reconciliation_id,
            first.pk)
        second.refresh_from_db()
        self.assertEqual(second.reconciled_balance, Decimal("0.00"))

    def test_entry_from_another_account_is_rejected(self):
        rec = self.start("5000")
        capital_entry = JournalEntry.objects.get(voucher=self.deposit, ledger_account=self.capital)

        with self.assertRaises(ValidationError):
            add_item(rec, capital_entry)
        with self.assertRaises(NotFoundError):
            add_item(rec, None)

    def test_remove_item_recomputes(self):
        rec = self.start("5000")
        add_item(rec, self.deposit_entry)
        add_item(rec, self.fee_entry)

        rec = remove_item(rec, self.fee_entry)
        self.assertEqual(rec.reconciled_balance, Decimal("5000.00"))
        with self.assertRaises(NotFoundError):
            remove_item(rec, self.fee_entry)

    def test_unposting_drops_links_and_recomputes(self):
        rec = self.start("5000")
        add_item(rec, self.deposit_entry)
        add_item(rec, self.fee_entry)

        unpost_voucher(self.fee)

        rec.refresh_from_db()
        self.assertEqual(rec.reconciled_balance, Decimal("5000.00"))
        self.assertEqual(ReconciliationItem.objects.filter(reconciliation=rec).count(), 1)

    def test_completed_reconciliation_is_frozen_until_reopened(self):
        rec = self.start("5000")
        add_item(rec, self.deposit_entry)
        complete(rec)

        with self.assertRaises(ConflictError):
            add_item(rec, self.fee_entry)
        with self.assertRaises(ConflictError):
            delete_reconciliation(rec)

        rec = reopen(rec)
        self.assertFalse(rec.is_completed)
        self.assertIsNone(rec.completed_by)
        with self.assertRaises(ConflictError):
            reopen(rec)

        delete_reconciliation(rec)
        self.assertFalse(AccountReconciliation.objects.filter(pk=rec.pk).exists())

    def test_unreconciled_entries(self):
        rec = self.start("5000")
        self.voucher([line(self.bank, debit=10), line(self.sales, credit=10)],
                     date=datetime.date(2025, 4, 2))
        add_item(rec, self.deposit_entry)

        self.assertEqual(list(unreconciled_entries(rec)), [self.fee_entry])

    def test_account_balance_snapshot_and_refresh(self):
        rec = self.start("4975")
        self.assertEqual(rec.account_balance, Decimal("4975.00"))

        # a late entry dated inside the statement period
        self.voucher([line(self.bank, debit=100), line(self.sales, credit=100)],
                     date=datetime.date(2025, 3, 25))
        rec.refresh_from_db()
        self.assertEqual(rec.account_balance, Decimal("4975.00"))
        self.assertEqual(refresh_account_balance(rec), Decimal("5075.00"))

    def test_vouchers_in_a_completed_reconciliation_are_frozen(self):
        rec = self.start("5000")
        add_item(rec, self.deposit_entry)
        complete(rec)

        with self.assertRaises(ConflictError):
            unpost_voucher(self.deposit)
        with self.assertRaises(ConflictError):
            update_voucher(self.deposit,
                           items=[line(self.bank, debit=6000), line(self.capital, credit=6000)])
        with self.assertRaises(ConflictError):
            delete_voucher(self.deposit)
        rec.refresh_from_db()
        self.assertEqual(rec.reconciled_balance, Decimal("5000.00"))
        self.assertTrue(ReconciliationItem.objects.filter(journal_entry=self.deposit_entry).exists())

        # once reopened the voucher can change again
        reopen(rec)
        unpost_voucher(self.deposit)
        rec.refresh_from_db()
        self.assertEqual(rec.reconciled_balance, Decimal("0.00"))
