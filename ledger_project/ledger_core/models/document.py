from django.conf import settings
from django.db import models
from ..managers import TenantManager
from .auditlog import TargetMixin
from .business import Business


class Document(TargetMixin):
    """Attachment reference; the bytes live in an external blob store under storage_key."""

    business = models.ForeignKey(Business, on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    storage_key = models.CharField(max_length=500, unique=True)
    file_name = models.CharField(max_length=255)
    file_type = models.CharField(max_length=100, blank=True, default="")
    file_size = models.PositiveIntegerField(default=0)  # bytes
    description = models.TextField(blank=True, default="")
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["business", "target_kind", "target_id"], name="ledger_core_busines_dc01_idx")]

    def __str__(self):
        return f"{self.name} → {self.target_kind}({self.target_id})"
