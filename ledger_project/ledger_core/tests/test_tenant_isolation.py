import datetime
from decimal import Decimal
import pytest
from django.contrib.admin.sites import AdminSite
from django.test import RequestFactory
from ledger_core.admin.account import LedgerAccountAdmin
from ledger_core.admin.journal import VoucherAdmin
from ledger_core.models import LedgerAccount, User, Voucher
from ..exceptions import CrossTenantError, NotFoundError
from ..services.balances import trial_balance
from ..services.vouchers import create_voucher
from .helpers import LedgerTestCase, line, make_business, make_chart, voucher_type


class TenantIsolationTests(LedgerTestCase):

    def setUp(self):
        super().setUp()
        self.other, _ = make_business("Globex")
        self.other_chart = make_chart(self.other)
        self.sale(100)
        create_voucher(
            self.other, voucher_type=voucher_type(self.other), date=datetime.date(2025, 3, 1),
            items=[line(self.other_chart["cash"], debit=40), line(self.other_chart["sales"], credit=40)])

    def test_for_business_scopes_rows(self):
        mine = LedgerAccount.objects.for_business(self.business)
        self.assertNotIn(self.other_chart["cash"], mine)
        self.assertIn(self.cash, mine)
        self.assertEqual(Voucher.objects.for_business(self.other).count(), 1)

    def test_get_for_business_hides_foreign_rows(self):
        self.assertEqual(LedgerAccount.objects.get_for_business(self.business, self.cash.pk),
                         self.cash)
        with self.assertRaises(NotFoundError):
            LedgerAccount.objects.get_for_business(self.business, self.other_chart["cash"].pk)

    def test_reports_stay_inside_the_tenant(self):
        report = trial_balance(self.business)
        self.assertEqual(report["total_debit"], Decimal("100.00"))
        self.assertEqual({row["account"].business_id for row in report["rows"]},
                         {self.business.pk})

    def test_mixing_tenants_in_one_voucher_is_refused(self):
        with self.assertRaises(CrossTenantError):
            self.voucher([line(self.cash, debit=10), line(self.other_chart["sales"], credit=10)])
        with self.assertRaises(CrossTenantError):
            self.voucher([line(self.cash, debit=10), line(self.sales, credit=10)],
                         party=None, financial_year=self.other.financialyear_set.get())


class TenantAdminTests(LedgerTestCase):

    def setUp(self):
        super().setUp()
        self.other, _ = make_business("Globex")
        self.other_chart = make_chart(self.other)
        self.factory = RequestFactory()
        self.user.default_business = self.business
        self.user.is_staff = True
        self.user.save()

    def request_for(self, user):
        request = self.factory.get("/admin/")
        request.user = user
        return request

    def test_staff_user_only_sees_own_business(self):
        admin = LedgerAccountAdmin(LedgerAccount, AdminSite())
        accounts = admin.get_queryset(self.request_for(self.user))

        self.assertIn(self.cash, accounts)
        self.assertNotIn(self.other_chart["cash"], accounts)

    def test_user_without_business_sees_nothing(self):
        stranger = User.objects.create_user(username="stranger", is_staff=True)
        admin = VoucherAdmin(Voucher, AdminSite())
        self.sale(10)

        self.assertEqual(admin.get_queryset(self.request_for(stranger)).count(), 0)

    def test_superuser_sees_everything(self):
        root = User.objects.create_superuser(username="root", password="pw")
        admin = LedgerAccountAdmin(LedgerAccount, AdminSite())
        accounts = admin.get_queryset(self.request_for(root))

        self.assertIn(self.other_chart["cash"], accounts)


@pytest.mark.django_db
def test_fixture_business_is_isolated_from_a_second_one(business, chart):
    other, _ = make_business("Initech")
    assert LedgerAccount.objects.for_business(other).count() == 0
    assert LedgerAccount.objects.for_business(business).count() == len(chart)
