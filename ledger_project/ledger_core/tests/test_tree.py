import datetime
from decimal import Decimal
from unittest import mock
from django.core.exceptions import ValidationError
from ledger_core.models import AccountGroup, CostCenter
from ..exceptions import ConflictError, CrossTenantError
from ..services.accounts import create_ledger_account
from ..services.tree import (change_nature, cost_center_totals, create_cost_center,
                             create_group, delete_cost_center, delete_group,
                             descendant_ids, flatten_cost_centers, flatten_hierarchy,
                             leaf_groups, move_cost_center, update_group)
from .helpers import LedgerTestCase, group, line, make_business


""" Group creation & nature rules """
class AccountGroupCreateTests(LedgerTestCase):

    def test_child_with_same_nature_as_parent_is_created(self):
        assets = group(self.business, "Assets")
        child = create_group(self.business, "Short Term Deposits", "assets", parent=assets)

        self.assertEqual(child.parent, assets)
        self.assertEqual(child.nature, "assets")

    def test_child_with_different_nature_is_rejected(self):
        income = group(self.business, "Income")
        before = AccountGroup.objects.count()

        with self.assertRaises(ValidationError) as cm:
            create_group(self.business, "Current Assets", "assets", parent=income)

        self.assertIn("does not match parent nature", str(cm.exception))
        self.assertEqual(AccountGroup.objects.count(), before)

    def test_parent_from_another_business_is_rejected(self):
        other, _ = make_business("Other Co")
        with self.assertRaises(CrossTenantError):
            create_group(self.business, "Stray", "assets", parent=group(other, "Assets"))

    def test_create_writes_audit_row(self):
        created = create_group(self.business, "Investments", "assets", user=self.user)
        self.assertTrue(
            self.business.auditlog_set.filter(
                action="create", target_kind="account_group", target_id=created.pk
            ).exists()
        )


""" Traversal """
class AccountGroupTraversalTests(LedgerTestCase):

    def test_flatten_hierarchy_is_preorder_by_sequence(self):
        flat = flatten_hierarchy(self.business)
        names = [name for _, name, _ in flat]
        depths = {name: depth for _, name, depth in flat}

        # roots in sequence order
        roots = [name for _, name, depth in flat if depth == 0]
        self.assertEqual(roots, ["Assets", "Liabilities", "Income", "Expense", "Equity"])
        # a child follows its parent directly
        self.assertEqual(names[:3], ["Assets", "Current Assets", "Bank Accounts"])
        self.assertEqual(depths["Bank Accounts"], 2)
        self.assertEqual(len(flat), AccountGroup.objects.filter(business=self.business).count())

    def test_descendant_ids(self):
        current = group(self.business, "Current Assets")
        expected = {
            group(self.business, name).pk
            for name in ("Bank Accounts", "Cash in Hand", "Accounts Receivable")
        }
        self.assertEqual(descendant_ids(current), expected)

    def test_leaf_groups_excludes_groups_with_children(self):
        names = {g.name for g in leaf_groups(self.business)}
        self.assertIn("Bank Accounts", names)
        self.assertNotIn("Current Assets", names)
        self.assertNotIn("Assets", names)


""" Nature cascade, cycles, deletion """
class AccountGroupMutationTests(LedgerTestCase):

    def setUp(self):
        super().setUp()
        # custom (non-system) three-level subtree
        self.root = create_group(self.business, "Other Holdings", "assets")
        self.child = create_group(self.business, "Deposits", "assets", parent=self.root)
        self.grandchild = create_group(self.business, "Escrow", "assets", parent=self.child)

    def test_nature_change_cascades_to_every_descendant(self):
        change_nature(self.root, "liabilities", user=self.user)

        for node in (self.root, self.child, self.grandchild):
            node.refresh_from_db()
            self.assertEqual(node.nature, "liabilities")

    def test_nature_change_rolls_back_when_a_step_fails(self):
        with mock.patch("ledger_core.services.tree.log_action",
                        side_effect=RuntimeError("audit store down")):
            with self.assertRaises(RuntimeError):
                change_nature(self.root, "liabilities")

        # all or nothing: no descendant kept the new nature
        for node in (self.root, self.child, self.grandchild):
            node.refresh_from_db()
            self.assertEqual(node.nature, "assets")

    def test_update_group_nature_cascades(self):
        update_group(self.root, nature="equity", name="Reserves")

        self.root.refresh_from_db()
        self.grandchild.refresh_from_db()
        self.assertEqual(self.root.name, "Reserves")
        self.assertEqual(self.grandchild.nature, "equity")

    def test_child_nature_cannot_diverge_from_parent(self):
        with self.assertRaises(ValidationError):
            update_group(self.child, nature="income")
        with self.assertRaises(ValidationError):
            change_nature(self.child, "income")

    def test_moving_under_own_descendant_is_rejected(self):
        with self.assertRaises(ValidationError):
            update_group(self.root, parent=self.grandchild)
        with self.assertRaises(ValidationError):
            update_group(self.root, parent=self.root)

        # tree untouched
        self.root.refresh_from_db()
        self.assertIsNone(self.root.parent_id)
        self.assertEqual(descendant_ids(self.root), {self.child.pk, self.grandchild.pk})

    def test_direct_save_cannot_close_a_cycle(self):
        self.root.parent = self.grandchild
        with self.assertRaises(ValidationError):
            self.root.save()

        self.root.refresh_from_db()
        self.assertIsNone(self.root.parent_id)

    def test_move_to_parent_of_same_nature(self):
        assets = group(self.business, "Assets")
        update_group(self.root, parent=assets)
        self.assertIn(self.grandchild.pk, descendant_ids(assets))

    def test_system_groups_are_read_only(self):
        assets = group(self.business, "Assets")
        with self.assertRaises(ConflictError):
            update_group(assets, name="Stuff")
        with self.assertRaises(ConflictError):
            delete_group(assets)

    def test_delete_refused_with_children_or_accounts(self):
        with self.assertRaises(ConflictError):
            delete_group(self.child)

        create_ledger_account(self.business, self.grandchild, "Escrow Account")
        with self.assertRaises(ConflictError):
            delete_group(self.grandchild)

    def test_delete_leaf_group(self):
        leaf = create_group(self.business, "Empty", "assets", parent=self.grandchild)
        delete_group(leaf)
        self.assertFalse(AccountGroup.objects.filter(pk=leaf.pk).exists())


class CostCenterTests(LedgerTestCase):

    def setUp(self):
        super().setUp()
        self.ops = create_cost_center(self.business, "Operations", code="OPS")
        self.north = create_cost_center(self.business, "North", code="N", parent=self.ops)
        self.admin = create_cost_center(self.business, "Admin", code="ADM")

    def test_flatten_orders_siblings_by_name(self):
        flat = flatten_cost_centers(self.business)
        self.assertEqual(
            [(name, depth) for _, name, depth in flat],
            [("Admin", 0), ("Operations", 0), ("North", 1)],
        )

    def test_cannot_move_under_descendant(self):
        with self.assertRaises(ValidationError):
            move_cost_center(self.ops, self.north)

        self.ops.parent = self.north
        with self.assertRaises(ValidationError):
            self.ops.save()

    def test_delete_refused_with_children_or_usage(self):
        with self.assertRaises(ConflictError):
            delete_cost_center(self.ops)

        self.voucher([line(self.rent, debit=100, cost_center=self.admin),
                      line(self.cash, credit=100)])
        with self.assertRaises(ConflictError):
            delete_cost_center(self.admin)
        # the ORM path is guarded too
        with self.assertRaises(ConflictError):
            self.admin.delete()
        self.assertTrue(CostCenter.objects.filter(pk=self.admin.pk).exists())

    def test_totals_cover_posted_vouchers_only(self):
        self.voucher([line(self.rent, debit=250, cost_center=self.admin),
                      line(self.cash, credit=250)])
        self.voucher([line(self.rent, debit=90, cost_center=self.admin),
                      line(self.cash, credit=90)], is_posted=False)
        self.voucher([line(self.rent, debit=40, cost_center=self.admin),
                      line(self.cash, credit=40)], date=datetime.date(2025, 5, 1))

        totals = cost_center_totals(self.admin, end_date=datetime.date(2025, 4, 30))
        self.assertEqual(totals["debit"], Decimal("250.00"))
        self.assertEqual(totals["credit"], Decimal("0.00"))
        self.assertEqual(totals["net"], Decimal("250.00"))
