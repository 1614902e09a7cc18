from decimal import Decimal

import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import ledger_core.managers

DEC = dict(max_digits=18, decimal_places=2, default=Decimal("0.00"))

TARGET_KINDS = [
    ("business", "Business"),
    ("account_group", "Account group"),
    ("ledger_account", "Ledger account"),
    ("cost_center", "Cost center"),
    ("financial_year", "Financial year"),
    ("voucher_type", "Voucher type"),
    ("voucher", "Voucher"),
    ("party", "Party"),
    ("reconciliation", "Account reconciliation"),
    ("budget", "Budget"),
    ("recurring_transaction", "Recurring transaction"),
]

MONTH_FIELDS = [
    (month, models.DecimalField(**DEC))
    for month in (
        "january", "february", "march", "april", "may", "june",
        "july", "august", "september", "october", "november", "december",
    )
]


def _id():
    return ("id", models.BigAutoField(auto_created=True, primary_key=True,
                                      serialize=False, verbose_name="ID"))


def _business():
    return ("business", models.ForeignKey(
        on_delete=django.db.models.deletion.CASCADE, to="ledger_core.business"))


def _user_fk(**kwargs):
    return models.ForeignKey(
        blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
        to=settings.AUTH_USER_MODEL, **kwargs)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="Currency",
            fields=[
                ("code", models.CharField(max_length=3, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=64)),
                ("symbol", models.CharField(blank=True, max_length=8, null=True)),
            ],
            options={"verbose_name_plural": "currencies"},
        ),
        migrations.CreateModel(
            name="User",
            fields=[
                _id(),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(
                    default=False,
                    help_text="Designates that this user has all permissions without explicitly assigning them.",
                    verbose_name="superuser status")),
                ("username", models.CharField(
                    error_messages={"unique": "A user with that username already exists."},
                    help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.",
                    max_length=150, unique=True,
                    validators=[django.contrib.auth.validators.UnicodeUsernameValidator()],
                    verbose_name="username")),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="email address")),
                ("is_staff", models.BooleanField(
                    default=False,
                    help_text="Designates whether the user can log into this admin site.",
                    verbose_name="staff status")),
                ("is_active", models.BooleanField(
                    default=True,
                    help_text="Designates whether this user should be treated as active. "
                              "Unselect this instead of deleting accounts.",
                    verbose_name="active")),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now,
                                                     verbose_name="date joined")),
                ("groups", models.ManyToManyField(
                    blank=True,
                    help_text="The groups this user belongs to. A user will get all permissions "
                              "granted to each of their groups.",
                    related_name="user_set", related_query_name="user",
                    to="auth.group", verbose_name="groups")),
                ("user_permissions", models.ManyToManyField(
                    blank=True, help_text="Specific permissions for this user.",
                    related_name="user_set", related_query_name="user",
                    to="auth.permission", verbose_name="user permissions")),
            ],
            options={
                "verbose_name": "user",
                "verbose_name_plural": "users",
                "abstract": False,
            },
            managers=[("objects", ledger_core.managers.UserManager())],
        ),
        migrations.CreateModel(
            name="Business",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("default_currency", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="businesses", to="ledger_core.currency")),
                ("owner", _user_fk(related_name="owned_businesses")),
            ],
            options={"verbose_name_plural": "businesses"},
        ),
        migrations.AddField(
            model_name="user",
            name="default_business",
            field=models.ForeignKey(
                blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                related_name="default_users", to="ledger_core.business"),
        ),
        migrations.AddIndex(
            model_name="user",
            index=models.Index(fields=["default_business"], name="ledger_core_default_0a1b2c_idx"),
        ),
        # ---------- chart of accounts ----------
        migrations.CreateModel(
            name="AccountGroup",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200)),
                ("nature", models.CharField(
                    choices=[("assets", "Assets"), ("liabilities", "Liabilities"),
                             ("income", "Income"), ("expense", "Expense"),
                             ("equity", "Equity")],
                    max_length=12)),
                ("affects_gross_profit", models.BooleanField(default=False)),
                ("sequence", models.PositiveIntegerField(default=0)),
                ("is_system", models.BooleanField(default=False)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                _business(),
                ("parent", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="children", to="ledger_core.accountgroup")),
            ],
            options={
                "ordering": ("sequence", "name"),
                "indexes": [
                    models.Index(fields=["business", "parent"], name="ledger_core_busines_ag01_idx"),
                    models.Index(fields=["business", "nature"], name="ledger_core_busines_ag02_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CostCenter",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200)),
                ("code", models.CharField(blank=True, max_length=32, null=True)),
                ("description", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                _business(),
                ("parent", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="children", to="ledger_core.costcenter")),
            ],
            options={
                "ordering": ("name",),
                "indexes": [
                    models.Index(fields=["business", "parent"], name="ledger_core_busines_cc01_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("business", "code"),
                                            name="uq_business_cost_center_code"),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerAccount",
            fields=[
                _id(),
                ("code", models.CharField(blank=True, max_length=32, null=True)),
                ("name", models.CharField(max_length=200)),
                ("opening_balance", models.DecimalField(**DEC)),
                ("opening_balance_type", models.CharField(
                    choices=[("debit", "Debit"), ("credit", "Credit")],
                    default="debit", max_length=6)),
                ("is_bank_account", models.BooleanField(default=False)),
                ("is_cash_account", models.BooleanField(default=False)),
                ("bank_name", models.CharField(blank=True, default="", max_length=200)),
                ("account_number", models.CharField(blank=True, default="", max_length=50)),
                ("is_system", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("account_group", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="ledger_accounts", to="ledger_core.accountgroup")),
                _business(),
            ],
            options={
                "ordering": ("code", "name"),
                "indexes": [
                    models.Index(fields=["business", "account_group"],
                                 name="ledger_core_busines_la01_idx"),
                    models.Index(fields=["business", "code"], name="ledger_core_busines_la02_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("business", "code"),
                                            name="uq_business_ledger_code"),
                    models.CheckConstraint(condition=models.Q(opening_balance__gte=0),
                                           name="ledger_opening_balance_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="FinancialYear",
            fields=[
                _id(),
                ("name", models.CharField(max_length=50)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("is_current", models.BooleanField(default=False)),
                ("is_locked", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                _business(),
            ],
            options={
                "ordering": ("business", "start_date"),
                "indexes": [
                    models.Index(fields=["business", "start_date"], name="ledger_core_busines_fy01_idx"),
                    models.Index(fields=["business", "is_current"], name="ledger_core_busines_fy02_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("business", "name"), name="uq_business_year_name"),
                    models.UniqueConstraint(condition=models.Q(is_current=True),
                                            fields=("business",), name="uq_business_current_year"),
                ],
            },
        ),
        # ---------- vouchers & journal ----------
        migrations.CreateModel(
            name="VoucherType",
            fields=[
                _id(),
                ("name", models.CharField(max_length=100)),
                ("code", models.CharField(max_length=16)),
                ("nature", models.CharField(
                    choices=[("receipt", "Receipt"), ("payment", "Payment"),
                             ("contra", "Contra"), ("journal", "Journal"),
                             ("sales", "Sales"), ("purchase", "Purchase"),
                             ("debit_note", "Debit Note"), ("credit_note", "Credit Note")],
                    max_length=12)),
                ("prefix", models.CharField(blank=True, default="", max_length=16)),
                ("auto_increment", models.BooleanField(default=True)),
                ("starting_number", models.PositiveIntegerField(default=1)),
                ("is_system", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                _business(),
            ],
            options={
                "ordering": ("name",),
                "constraints": [
                    models.UniqueConstraint(fields=("business", "code"),
                                            name="uq_business_voucher_type_code"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Party",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200)),
                ("type", models.CharField(
                    choices=[("customer", "Customer"), ("supplier", "Supplier"), ("both", "Both")],
                    default="customer", max_length=10)),
                ("contact_person", models.CharField(blank=True, default="", max_length=200)),
                ("phone", models.CharField(blank=True, default="", max_length=32)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("address", models.TextField(blank=True, default="")),
                ("tax_number", models.CharField(blank=True, default="", max_length=64)),
                ("credit_limit", models.DecimalField(blank=True, decimal_places=2,
                                                     max_digits=18, null=True)),
                ("credit_period", models.PositiveIntegerField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                _business(),
                ("ledger_account", models.OneToOneField(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="party", to="ledger_core.ledgeraccount")),
            ],
            options={
                "verbose_name_plural": "parties",
                "ordering": ("name",),
                "indexes": [
                    models.Index(fields=["business", "type"], name="ledger_core_busines_pt01_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Voucher",
            fields=[
                _id(),
                ("voucher_number", models.CharField(max_length=50)),
                ("date", models.DateField()),
                ("narration", models.TextField(blank=True, default="")),
                ("reference", models.CharField(blank=True, default="", max_length=200)),
                ("is_posted", models.BooleanField(default=False)),
                ("total_amount", models.DecimalField(**DEC)),
                ("posting_fingerprint", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                _business(),
                ("created_by", _user_fk(related_name="+")),
                ("financial_year", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="vouchers", to="ledger_core.financialyear")),
                ("party", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="vouchers", to="ledger_core.party")),
                ("updated_by", _user_fk(related_name="+")),
                ("voucher_type", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="vouchers", to="ledger_core.vouchertype")),
            ],
            options={
                "ordering": ("date", "id"),
                "indexes": [
                    models.Index(fields=["business", "date"], name="ledger_core_busines_vo01_idx"),
                    models.Index(fields=["business", "party"], name="ledger_core_busines_vo02_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("business", "voucher_type", "financial_year", "voucher_number"),
                        name="uq_voucher_number"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VoucherItem",
            fields=[
                _id(),
                ("debit_amount", models.DecimalField(**DEC)),
                ("credit_amount", models.DecimalField(**DEC)),
                ("narration", models.TextField(blank=True, default="")),
                ("sequence", models.PositiveIntegerField(default=0)),
                _business(),
                ("cost_center", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="voucher_items", to="ledger_core.costcenter")),
                ("ledger_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="voucher_items", to="ledger_core.ledgeraccount")),
                ("voucher", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="items", to="ledger_core.voucher")),
            ],
            options={
                "ordering": ("sequence", "id"),
                "indexes": [
                    models.Index(fields=["business", "ledger_account"], name="ledger_core_busines_vi01_idx"),
                    models.Index(fields=["business", "cost_center"], name="ledger_core_busines_vi02_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(debit_amount__gte=0) & models.Q(credit_amount__gte=0),
                        name="vi_non_negative_amounts"),
                    models.CheckConstraint(
                        condition=~(models.Q(debit_amount=0) & models.Q(credit_amount=0)),
                        name="vi_debit_or_credit_nonzero"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                _id(),
                ("date", models.DateField()),
                ("debit_amount", models.DecimalField(**DEC)),
                ("credit_amount", models.DecimalField(**DEC)),
                ("narration", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                _business(),
                ("cost_center", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="journal_entries", to="ledger_core.costcenter")),
                ("financial_year", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="journal_entries", to="ledger_core.financialyear")),
                ("ledger_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="journal_entries", to="ledger_core.ledgeraccount")),
                ("voucher", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="journal_entries", to="ledger_core.voucher")),
                ("voucher_item", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.CASCADE,
                    related_name="journal_entries", to="ledger_core.voucheritem")),
            ],
            options={
                "verbose_name_plural": "journal entries",
                "ordering": ("date", "id"),
                "indexes": [
                    models.Index(fields=["business", "ledger_account", "date"],
                                 name="ledger_core_busines_je01_idx"),
                    models.Index(fields=["business", "financial_year"], name="ledger_core_busines_je02_idx"),
                    models.Index(fields=["business", "cost_center"], name="ledger_core_busines_je03_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(debit_amount__gte=0) & models.Q(credit_amount__gte=0),
                        name="je_non_negative_amounts"),
                ],
            },
        ),
        # ---------- reconciliation ----------
        migrations.CreateModel(
            name="AccountReconciliation",
            fields=[
                _id(),
                ("statement_date", models.DateField()),
                ("statement_balance", models.DecimalField(decimal_places=2, max_digits=18)),
                ("account_balance", models.DecimalField(**DEC)),
                ("reconciled_balance", models.DecimalField(**DEC)),
                ("notes", models.TextField(blank=True, default="")),
                ("is_completed", models.BooleanField(default=False)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                _business(),
                ("completed_by", _user_fk(related_name="+")),
                ("ledger_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="reconciliations", to="ledger_core.ledgeraccount")),
            ],
            options={
                "ordering": ("-statement_date",),
                "indexes": [
                    models.Index(fields=["business", "ledger_account", "statement_date"],
                                 name="ledger_core_busines_ar01_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("ledger_account", "statement_date"),
                                            name="uq_reconciliation_account_date"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReconciliationItem",
            fields=[
                _id(),
                ("is_reconciled", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("journal_entry", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="reconciliation_item", to="ledger_core.journalentry")),
                ("reconciliation", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="items", to="ledger_core.accountreconciliation")),
            ],
        ),
        # ---------- planning ----------
        migrations.CreateModel(
            name="Budget",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                _business(),
                ("financial_year", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="budgets", to="ledger_core.financialyear")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("business", "financial_year", "name"),
                                            name="uq_budget_name_per_year"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BudgetItem",
            fields=[
                _id(),
                ("annual_amount", models.DecimalField(**DEC)),
                *MONTH_FIELDS,
                ("distribute_evenly", models.BooleanField(default=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("budget", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="items", to="ledger_core.budget")),
                ("cost_center", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="budget_items", to="ledger_core.costcenter")),
                ("ledger_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="budget_items", to="ledger_core.ledgeraccount")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["budget", "ledger_account"], name="ledger_core_budget__bi01_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("budget", "ledger_account", "cost_center"),
                                            nulls_distinct=False,
                                            name="uq_budget_item_account_center"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RecurringTransaction",
            fields=[
                _id(),
                ("name", models.CharField(max_length=200)),
                ("amount", models.DecimalField(**DEC, editable=False)),
                ("narration", models.TextField(blank=True, default="")),
                ("frequency", models.CharField(
                    choices=[("daily", "Daily"), ("weekly", "Weekly"), ("monthly", "Monthly"),
                             ("quarterly", "Quarterly"), ("yearly", "Yearly")],
                    max_length=10)),
                ("day_of_month", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("day_of_week", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("month", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField(blank=True, null=True)),
                ("last_generated_date", models.DateField(blank=True, null=True)),
                ("occurrences", models.PositiveIntegerField(blank=True, null=True)),
                ("occurrences_generated", models.PositiveIntegerField(default=0)),
                ("template", models.JSONField(default=list)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                _business(),
                ("created_by", _user_fk(related_name="+")),
                ("voucher_type", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="recurring_transactions", to="ledger_core.vouchertype")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["business", "frequency", "start_date"],
                                 name="ledger_core_busines_rt01_idx"),
                ],
            },
        ),
        # ---------- audit & documents ----------
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                _id(),
                ("target_kind", models.CharField(choices=TARGET_KINDS, max_length=32)),
                ("target_id", models.BigIntegerField()),
                ("action", models.CharField(max_length=50)),
                ("old_values", models.JSONField(blank=True, null=True)),
                ("new_values", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                _business(),
                ("user", _user_fk()),
            ],
            options={
                "ordering": ("-created_at", "-id"),
                "indexes": [
                    models.Index(fields=["business", "target_kind", "target_id"],
                                 name="ledger_core_busines_al01_idx"),
                    models.Index(fields=["business", "action"], name="ledger_core_busines_al02_idx"),
                    models.Index(fields=["business", "user"], name="ledger_core_busines_al03_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Document",
            fields=[
                _id(),
                ("target_kind", models.CharField(choices=TARGET_KINDS, max_length=32)),
                ("target_id", models.BigIntegerField()),
                ("name", models.CharField(max_length=200)),
                ("storage_key", models.CharField(max_length=500, unique=True)),
                ("file_name", models.CharField(max_length=255)),
                ("file_type", models.CharField(blank=True, default="", max_length=100)),
                ("file_size", models.PositiveIntegerField(default=0)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                _business(),
                ("uploaded_by", _user_fk()),
            ],
            options={
                "indexes": [
                    models.Index(fields=["business", "target_kind", "target_id"],
                                 name="ledger_core_busines_dc01_idx"),
                ],
            },
        ),
    ]
