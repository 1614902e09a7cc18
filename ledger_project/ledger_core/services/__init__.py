# Workflows callers are expected to use; every one takes the business
# (or an entity that carries it) explicitly.
from .accounts import create_ledger_account, delete_ledger_account, update_ledger_account
from .aging import aging_buckets, payables_aging, receivables_aging
from .balances import (Balance, account_balance, group_balance, nature_total,
                       opening_balance_as_of, signed_balance, trial_balance)
from .bootstrap import bootstrap_business
from .budget import add_or_update_item, create_budget, monthly_comparison, variance_report
from .documents import attach_document
from .journal import clear_journal_entries, generate_journal_entries
from .parties import create_party, delete_party, has_exceeded_credit_limit, update_party
from .periods import (create_financial_year, lock_year, previous_financial_year,
                      resolve_financial_year, set_current, unlock_year)
from .posting import post_voucher, transition_to, unpost_voucher
from .recurring import generate_voucher, is_due, next_due_date, process_all_due
from .reports import (balance_sheet, cash_flow, comparative_period, dashboard_summary,
                      financial_ratios, ledger_statement, monthly_series, party_statement,
                      profit_and_loss)
from .tree import (change_nature, create_cost_center, create_group, delete_cost_center,
                   delete_group, descendant_ids, flatten_hierarchy, update_group)
from .validation import validate_balance
from .vouchers import create_voucher, delete_voucher, next_voucher_number, update_voucher
