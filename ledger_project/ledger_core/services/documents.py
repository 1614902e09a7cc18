import uuid
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils.text import get_valid_filename
from ..models import Document
from ..models.auditlog import target_kind_for
from .audit_helper import log_action
from .validation import ensure_same_business


def storage_key_for(business, target_kind, target_id, file_name):
    """Blob-store key: one folder per business and target, a uuid per upload."""
    return (f"businesses/{business.pk}/{target_kind}/{target_id}/"
            f"{uuid.uuid4().hex}/{get_valid_filename(file_name)}")


@transaction.atomic
def attach_document(business, target, name, file_name, *, file_type="",
                    file_size=0, description="", user=None):
    """
    Record an attachment reference on ``target``. Storing the bytes under
    the returned document's storage_key is up to the caller.
    """
    kind = target_kind_for(target)
    if kind == "business":
        raise ValidationError(f"Documents cannot be attached to '{kind}'.")
    ensure_same_business(business, target)

    document = Document(
        business=business,
        target_kind=kind,
        target_id=target.pk,
        name=name,
        file_name=file_name,
        file_type=file_type,
        file_size=file_size,
        description=description,
        uploaded_by=user,
        storage_key=storage_key_for(business, kind, target.pk, file_name),
    )
    document.save()
    log_action(action="attach_document", instance=target, user=user,
               business=business, new_values={"document": document.pk,
                                              "file_name": file_name})
    return document


def documents_for(target):
    return Document.objects.filter(
        business_id=target.business_id,
        target_kind=target_kind_for(target),
        target_id=target.pk,
    ).order_by("-created_at")
