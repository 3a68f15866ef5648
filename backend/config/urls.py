"""
URL configuration for the task backend.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "ProUltima Task Manager Admin"
admin.site.site_title = "ProUltima Admin Portal"
admin.site.index_title = "Welcome to ProUltima Task Manager"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.staff.urls')),
    path('api/v1/', include('backend.tasks.urls')),
]
