"""
URL configuration for contractsign project.
"""

from django.contrib import admin
from django.urls import path, include

from contracts.urls import public_urlpatterns

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/public/contracts/', include((public_urlpatterns, 'contracts'), namespace='public')),
    path('api/contracts/', include('contracts.urls')),
]
