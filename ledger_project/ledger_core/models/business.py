from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from ..managers import UserManager


# ---------- Tenant / Business ----------
class Business(models.Model):
    """Tenant root. Every ledger row hangs off exactly one business."""

    name = models.CharField(max_length=200)
    slug = models.SlugField(  # URL-friendly identifier
        max_length=80, unique=True
    )
    # Reporting currency of the books
    default_currency = models.ForeignKey(
        "Currency",
        null=True,
        blank=True,
        # don't allow deleting a currency a business reports in
        on_delete=models.PROTECT,
        related_name="businesses",
    )
    # creator of the business; the books survive the user
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="owned_businesses",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "businesses"

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        # slug is optional for callers, but must stay unique
        if not self.slug:
            from django.utils.text import slugify

            base = slugify(self.name) or "business"
            slug, i = base, 1
            while Business.objects.filter(slug=slug).exists():
                slug = f"{base}-{i}"  # "acme" → "acme-1" → "acme-2"
                i += 1
            self.slug = slug
        return super().save(*args, **kwargs)


# ---------- Custom User ----------
class User(AbstractUser):
    """
    Opaque identity stamped on created_by / updated_by / completed_by.
    AUTH_USER_MODEL = "ledger_core.User" must be set before the first migrate.
    """

    # Business the user lands in; switching is handled outside the engine
    default_business = models.ForeignKey(
        "Business",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="default_users",
    )

    objects = UserManager()

    class Meta:
        indexes = [models.Index(fields=["default_business"], name="ledger_core_default_0a1b2c_idx")]

    def __str__(self):
        return self.get_full_name() or self.username
