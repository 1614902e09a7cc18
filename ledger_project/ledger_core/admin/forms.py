from decimal import ROUND_HALF_UP, Decimal
from django import forms
from django.core.exceptions import ValidationError
from django.contrib.auth.forms import (
    UserChangeForm as DjangoUserChangeForm,
    UserCreationForm as DjangoUserCreationForm)
from ledger_core.models import MONTHS, BudgetItem, LedgerAccount, User, Voucher
from ledger_core.models.voucher import to_money
from ledger_core.services.validation import ensure_year_unlocked

# -----------------------------
# Register custom admin forms
# ----------------------------


# Subclass `DjangoUserCreationForm` (form used when adding a new user)
class UserAdminCreationForm(DjangoUserCreationForm):
    class Meta(DjangoUserCreationForm.Meta):
        model = User  # Points `model` to custom User model
        fields = ("username", "email", "default_business")


# Subclass `DjangoUserChangeForm` (form used when editing an existing user)
class UserAdminChangeForm(DjangoUserChangeForm):
    class Meta(DjangoUserChangeForm.Meta):
        model = User
        fields = (
            "username",
            "email",
            "is_active",
            "is_staff",
            "is_superuser",
            "default_business",
        )


# Inline form for BudgetItem (admin)
class BudgetItemInlineForm(forms.ModelForm):
    class Meta:
        model = BudgetItem
        fields = ("ledger_account", "cost_center", "annual_amount",
                  "distribute_evenly", *MONTHS, "notes")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # one side is always derived from the other in clean()
        for name in ("annual_amount", *MONTHS):
            if name in self.fields:
                self.fields[name].required = False
        # Only income and expense accounts of the budget's business can be planned
        if "ledger_account" in self.fields and getattr(self.instance, "budget_id", None):
            self.fields["ledger_account"].queryset = LedgerAccount.objects.filter(
                business_id=self.instance.budget.business_id,
                account_group__nature__in=("income", "expense"),
            )

    def _set(self, cleaned, name, value):
        # omitted inputs keep the instance value, so write both
        cleaned[name] = value
        setattr(self.instance, name, value)

    def clean(self):
        cleaned = super().clean()

        account = cleaned.get("ledger_account")
        if account and account.nature not in ("income", "expense"):
            raise ValidationError(
                {"ledger_account": "Only income and expense accounts can be budgeted."})

        budget_id = getattr(self.instance, "budget_id", None)
        if account and budget_id:
            clash = BudgetItem.objects.filter(
                budget_id=budget_id, ledger_account=account,
                cost_center=cleaned.get("cost_center"))
            if self.instance.pk:
                clash = clash.exclude(pk=self.instance.pk)
            if clash.exists():
                raise ValidationError(
                    "This budget already has a line for that account and cost center.")

        if cleaned.get("distribute_evenly"):
            # even spread: annual / 12 on every month, cents are not redistributed
            annual = to_money(cleaned.get("annual_amount"))
            monthly = (annual / 12).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            self._set(cleaned, "annual_amount", annual)
            for month in MONTHS:
                self._set(cleaned, month, monthly)
        else:
            # manual months: the annual amount is their sum
            values = []
            for month in MONTHS:
                value = cleaned.get(month)
                if value is None:
                    value = getattr(self.instance, month)
                values.append(to_money(value))
                self._set(cleaned, month, values[-1])
            self._set(cleaned, "annual_amount", sum(values, Decimal("0.00")))
        return cleaned


# Lines added together in one submit must not repeat each other either
class BudgetItemFormSet(forms.BaseInlineFormSet):
    def clean(self):
        super().clean()
        seen = set()
        for form in self.forms:
            cleaned = getattr(form, "cleaned_data", None)
            if not cleaned or cleaned.get("DELETE"):
                continue
            key = (cleaned.get("ledger_account"), cleaned.get("cost_center"))
            if key in seen:
                raise ValidationError(
                    "Each account and cost center can appear only once per budget.")
            seen.add(key)


# Change form for Voucher (admin): header notes only, never in a locked year
class VoucherAdminForm(forms.ModelForm):
    class Meta:
        model = Voucher
        fields = ("narration", "reference")

    def clean(self):
        cleaned = super().clean()
        if self.instance.pk:
            ensure_year_unlocked(self.instance.financial_year)
        return cleaned
