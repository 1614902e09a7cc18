import logging
from datetime import date
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def process_due_recurring_transactions(business_id=None, today=None):
    """
    Generate the vouchers of every due recurring transaction.
    One business when ``business_id`` is given, otherwise all of them.
    Returns the number of vouchers generated.
    """
    # import lazily to avoid circular imports at module import time
    from .models import Business
    from .services.recurring import process_all_due

    # Celery serializes arguments as JSON, dates arrive as ISO strings
    if isinstance(today, str):
        today = date.fromisoformat(today)

    businesses = Business.objects.all()
    if business_id is not None:
        businesses = businesses.filter(pk=business_id)

    count = 0
    for business in businesses.order_by("id"):
        count += len(process_all_due(business, today=today))
    logger.info("recurring task finished", extra={"business": business_id, "generated": count})
    return count
