class TenantAdminMixin:
    """
    Enforce tenant isolation in Django admin.
    Uses request.business when a caller has set it,
    or falls back to request.user.default_business.
    """

    def _get_request_business(self, request):
        # prefer request.business
        # but fallback to the user's default business
        business = getattr(request, "business", None)
        if business is None:
            user = getattr(request, "user", None)
            business = getattr(user, "default_business", None)
        return business

    def get_queryset(self, request):
        qs = super().get_queryset(request)

        # If superuser, show everything;
        # otherwise restrict to the business if available
        if request.user.is_superuser:
            return qs
        business = self._get_request_business(request)
        if business is None:
            # no business known for this request, show nothing
            return qs.none()
        return qs.filter(business=business)

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        """
        Restrict foreignkey dropdowns to the current business:
        the business field itself and every business-owned model
        (accounts, groups, cost centers, parties...).
        """
        if not request.user.is_superuser:
            business = self._get_request_business(request)
            rel_model = db_field.related_model
            if db_field.name == "business":
                kwargs["queryset"] = (
                    rel_model.objects.filter(pk=business.pk)
                    if business is not None else rel_model.objects.none()
                )
            elif hasattr(rel_model, "business"):
                kwargs["queryset"] = (
                    rel_model.objects.filter(business=business)
                    if business is not None else rel_model.objects.none()
                )
        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def save_model(self, request, obj, form, change):
        # Ensure object is always owned by the business on save (unless superuser)
        if not request.user.is_superuser:
            business = self._get_request_business(request)
            if business is not None:
                obj.business = business
        super().save_model(request, obj, form, change)
