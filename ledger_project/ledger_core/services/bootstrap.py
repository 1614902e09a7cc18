"""
Seed a new business with the standard chart of accounts, the system
voucher types and its first (current) financial year.
"""
import logging
from django.db import transaction
from ..exceptions import ConflictError
from ..models import AccountGroup, VoucherType
from .audit_helper import log_action
from .periods import create_financial_year

logger = logging.getLogger(__name__)

# (name, nature, sequence, affects_gross_profit, children)
DEFAULT_GROUPS = [
    ("Assets", "assets", 1, False, [
        ("Current Assets", "assets", 1, False, [
            ("Bank Accounts", "assets", 1, False, []),
            ("Cash in Hand", "assets", 2, False, []),
            ("Accounts Receivable", "assets", 3, False, []),
        ]),
        ("Fixed Assets", "assets", 2, False, []),
    ]),
    ("Liabilities", "liabilities", 10, False, [
        ("Current Liabilities", "liabilities", 1, False, [
            ("Accounts Payable", "liabilities", 1, False, []),
            ("Duties & Taxes", "liabilities", 2, False, []),
        ]),
        ("Long Term Liabilities", "liabilities", 2, False, []),
    ]),
    ("Income", "income", 20, True, [
        ("Direct Income", "income", 1, True, [
            ("Sales", "income", 1, True, []),
        ]),
        ("Indirect Income", "income", 2, False, []),
    ]),
    ("Expense", "expense", 30, False, [
        ("Direct Expense", "expense", 1, True, [
            ("Purchases", "expense", 1, True, []),
        ]),
        ("Indirect Expense", "expense", 2, False, [
            ("Administrative Expenses", "expense", 1, False, []),
            ("Selling Expenses", "expense", 2, False, []),
        ]),
    ]),
    ("Equity", "equity", 40, False, [
        ("Capital Account", "equity", 1, False, []),
        ("Retained Earnings", "equity", 2, False, []),
    ]),
]

# (name, prefix, nature); the prefix doubles as the code
DEFAULT_VOUCHER_TYPES = [
    ("Payment Voucher", "PMT", "payment"),
    ("Receipt Voucher", "RCT", "receipt"),
    ("Contra Voucher", "CNT", "contra"),
    ("Journal Voucher", "JRN", "journal"),
    ("Sales Voucher", "SLS", "sales"),
    ("Purchase Voucher", "PUR", "purchase"),
    ("Debit Note", "DBN", "debit_note"),
    ("Credit Note", "CRN", "credit_note"),
]


def _create_groups(business, specs, parent=None):
    created = []
    for name, nature, sequence, affects_gp, children in specs:
        group = AccountGroup(
            business=business, parent=parent, name=name, nature=nature,
            sequence=sequence, affects_gross_profit=affects_gp, is_system=True,
        )
        group.save()
        created.append(group)
        created.extend(_create_groups(business, children, parent=group))
    return created


@transaction.atomic
def bootstrap_business(business, year_start, year_end, year_name=None, user=None):
    """Everything or nothing: a failure leaves the business untouched."""
    if AccountGroup.objects.filter(business=business, is_system=True).exists():
        raise ConflictError(f"{business} is already bootstrapped.")

    groups = _create_groups(business, DEFAULT_GROUPS)
    voucher_types = []
    for name, prefix, nature in DEFAULT_VOUCHER_TYPES:
        voucher_type = VoucherType(
            business=business, name=name, code=prefix, prefix=prefix,
            nature=nature, is_system=True,
        )
        voucher_type.save()
        voucher_types.append(voucher_type)

    year = create_financial_year(
        business,
        year_name or f"FY {year_start.year}-{year_end.year}",
        year_start, year_end, is_current=True, user=user,
    )
    log_action(action="bootstrap", instance=business, user=user,
               new_values={"groups": len(groups), "voucher_types": len(voucher_types),
                           "financial_year": year.pk})
    logger.info(
        "business bootstrapped",
        extra={"business": business.pk, "groups": len(groups)},
    )
    return {"groups": groups, "voucher_types": voucher_types, "financial_year": year}
