from django.forms.models import model_to_dict
from ..models import AuditLog
from ..models.auditlog import target_kind_for


def snapshot(instance, fields=None):
    """JSON-safe dict of an instance's field values for old/new_values."""
    data = model_to_dict(instance, fields=fields)
    return {key: (value if isinstance(value, (int, bool, type(None))) else str(value))
            for key, value in data.items()}


def log_action(
    *,
    action: str,
    instance,
    user=None,
    business=None,
    old_values: dict | None = None,
    new_values: dict | None = None,
):
    """
    Central audit logger.
    Safe to call multiple times (caller ensures idempotency).
    """
    if business is None:
        business = getattr(instance, "business", None) or instance

    return AuditLog.objects.create(
        business=business,
        user=user,
        action=action,
        target_kind=target_kind_for(instance),
        target_id=instance.pk,
        old_values=old_values,
        new_values=new_values,
    )
