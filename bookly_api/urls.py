from django.contrib import admin
from django.urls import path


urlpatterns = [
    path("super/", admin.site.urls, name="admin"),
]
