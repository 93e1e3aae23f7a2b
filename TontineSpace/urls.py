"""TontineSpace URL Configuration"""

from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static


urlpatterns = [
    path('admin/', admin.site.urls),

    # ========== TONTINES (rotation, payments, participants) ==========
    path('tontines/', include('tontines.urls', namespace='tontines')),

    # ========== NOTIFICATIONS ==========
    path('notifications/', include('notifications.urls', namespace='notifications')),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
