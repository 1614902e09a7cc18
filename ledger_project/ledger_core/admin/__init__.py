from .account import AccountGroupAdmin, CostCenterAdmin, LedgerAccountAdmin, PartyAdmin
from .actions import (complete_reconciliations, generate_due_vouchers, lock_years,
                      post_vouchers, unlock_years, unpost_vouchers)
from .auditlog import AuditLogAdmin, DocumentAdmin
from .banking import AccountReconciliationAdmin
from .business import BusinessAdmin, CurrencyAdmin, UserAdmin
from .forms import UserAdminChangeForm, UserAdminCreationForm
from .inlines import BudgetItemInline, ReconciliationItemInline, VoucherItemInline
from .journal import JournalEntryAdmin, VoucherAdmin, VoucherTypeAdmin
from .mixins import TenantAdminMixin
from .period import FinancialYearAdmin
from .planning import BudgetAdmin, RecurringTransactionAdmin
