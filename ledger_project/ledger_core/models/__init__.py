from .account_group import DEBIT_NATURES, NATURES, AccountGroup
from .auditlog import TARGET_KINDS, AuditLog
from .budget import MONTHS, Budget, BudgetItem
from .business import Business, User
from .cost_center import CostCenter
from .currency import Currency
from .document import Document
from .financial_year import FinancialYear
from .journal import JournalEntry
from .ledger_account import LedgerAccount
from .party import Party
from .reconciliation import AccountReconciliation, ReconciliationItem
from .recurring import RecurringTransaction
from .voucher import Voucher, VoucherItem, VoucherType
