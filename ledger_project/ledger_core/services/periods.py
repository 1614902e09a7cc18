import calendar
import logging
from django.core.exceptions import ValidationError
from django.db import transaction
from ..exceptions import ConflictError, NotFoundError
from ..models import FinancialYear
from .audit_helper import log_action

logger = logging.getLogger(__name__)

"""
    Voucher date determines the financial year.
    Locking a year freezes every voucher inside it.
"""


def add_months(day, months):
    """Shift ``day`` by ``months``, clamped to the last day of the target month."""
    index = day.month - 1 + months
    year, month = day.year + index // 12, index % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last))


def resolve_financial_year(business, date):
    try:
        return FinancialYear.objects.get(
            business=business,
            start_date__lte=date,
            end_date__gte=date,
        )
    except FinancialYear.DoesNotExist:
        raise NotFoundError(
            f"No financial year covers {date} in {business}"
        )


def current_financial_year(business):
    year = FinancialYear.objects.filter(business=business, is_current=True).first()
    if year is None:
        raise NotFoundError(f"{business} has no current financial year")
    return year


def previous_financial_year(financial_year):
    """Latest year of the same business that ends before this one starts."""
    return (
        FinancialYear.objects.filter(
            business_id=financial_year.business_id,
            end_date__lt=financial_year.start_date,
        )
        .order_by("-end_date")
        .first()
    )


@transaction.atomic
def create_financial_year(business, name, start_date, end_date,
                          is_current=False, user=None):
    """Create a year; overlapping ranges are rejected by FinancialYear.clean()."""
    year = FinancialYear(
        business=business, name=name,
        start_date=start_date, end_date=end_date,
    )
    year.save()
    if is_current:
        set_current(year, user=user)
    log_action(action="create", instance=year, user=user)
    logger.info("financial year created", extra={"business": business.pk, "year": year.pk})
    return year


@transaction.atomic
def set_current(financial_year, user=None):
    """Make ``financial_year`` the only current year of its business."""
    FinancialYear.objects.select_for_update().filter(
        business_id=financial_year.business_id, is_current=True
    ).exclude(pk=financial_year.pk).update(is_current=False)
    financial_year.is_current = True
    financial_year.save()
    log_action(action="set_current", instance=financial_year, user=user)
    return financial_year


@transaction.atomic
def update_financial_year(financial_year, user=None, **changes):
    if financial_year.is_locked:
        raise ValidationError("A locked financial year cannot be edited.")
    for field in ("name", "start_date", "end_date"):
        if field in changes:
            setattr(financial_year, field, changes[field])
    financial_year.save()
    log_action(action="update", instance=financial_year, user=user)
    return financial_year


@transaction.atomic
def lock_year(financial_year, user=None):
    year = FinancialYear.objects.select_for_update().get(pk=financial_year.pk)
    if year.is_locked:
        raise ConflictError("Financial year is already locked.")
    if year.is_current:
        raise ConflictError("Cannot lock the current financial year.")
    year.is_locked = True
    year.save()
    log_action(action="lock", instance=year, user=user)
    logger.info("financial year locked", extra={"business": year.business_id, "year": year.pk})
    financial_year.is_locked = True
    return year


@transaction.atomic
def unlock_year(financial_year, user=None):
    year = FinancialYear.objects.select_for_update().get(pk=financial_year.pk)
    if not year.is_locked:
        raise ConflictError("Financial year is not locked.")
    year.is_locked = False
    year.save()
    log_action(action="unlock", instance=year, user=user)
    logger.info("financial year unlocked", extra={"business": year.business_id, "year": year.pk})
    financial_year.is_locked = False
    return year
