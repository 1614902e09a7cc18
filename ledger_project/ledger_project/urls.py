from django.contrib import admin
from django.urls import path

# HTTP surface is limited to the admin site
urlpatterns = [
    path("admin/", admin.site.urls),
]
