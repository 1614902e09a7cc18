from decimal import Decimal
from django.contrib.auth.base_user import BaseUserManager
from django.db import models


# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a business
# -----------------------------------------
class TenantQuerySet(models.QuerySet):
    def for_business(self, business):
        return self.filter(business=business)

    def active(self, business):
        return self.filter(
            business=business,  # enforce tenant scoping
            is_active=True,  # only fetch active records
        )
    # LedgerAccount.objects.active(business)

    def get_for_business(self, business, pk):
        """Fetch one row by id inside the tenant, or raise NotFoundError."""
        from .exceptions import NotFoundError

        try:
            return self.for_business(business).get(pk=pk)
        except self.model.DoesNotExist:
            raise NotFoundError(
                f"{self.model.__name__} {pk} not found in {business}")


class TenantManager(models.Manager):
    # every model gets TenantQuerySet, so .for_business() is always available
    _queryset_class = TenantQuerySet

    def get_queryset(self):
        return self._queryset_class(self.model, using=self._db)

    def for_business(self, business):
        return self.get_queryset().for_business(business)

    def active(self, business):
        return self.get_queryset().active(business)

    def get_for_business(self, business, pk):
        return self.get_queryset().get_for_business(business, pk)


class UserManager(BaseUserManager):
    """ Enforce rules around how users are created """

    use_in_migrations = True

    # Shared logic for both create_user() & create_superuser()
    def _create_user(self, username, email, password, **extra_fields):
        if not username:
            raise ValueError("The given username must be set")
        email = self.normalize_email(email)
        user = self.model(username=username, email=email, **extra_fields)
        user.set_password(password)  # Password is hashed
        user.save(using=self._db)
        return user

    def create_user(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(username, email, password, **extra_fields)

    # Used by Django when running `createsuperuser`
    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        if extra_fields.get("is_staff") is not True or extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_staff=True and is_superuser=True")
        return self._create_user(username, email, password, **extra_fields)


class JournalEntryQuerySet(TenantQuerySet):
    def for_account(self, account):
        return self.filter(ledger_account=account)

    def up_to(self, as_of=None, financial_year=None):
        """Rows dated on or before ``as_of``, optionally bounded to one year."""
        qs = self
        if as_of is not None:
            qs = qs.filter(date__lte=as_of)
        if financial_year is not None:
            qs = qs.filter(financial_year=financial_year)
        return qs

    def totals(self):
        """Return (total_debit, total_credit) as Decimals."""
        aggs = self.aggregate(
            total_debit=models.Sum("debit_amount"),
            total_credit=models.Sum("credit_amount"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )


# Journal rows get the same tenant helpers plus aggregation shortcuts
JournalEntryManager = TenantManager.from_queryset(JournalEntryQuerySet)
