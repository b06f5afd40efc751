from django.contrib import admin
from django.urls import path, include


urlpatterns = [
    path('admin/', admin.site.urls),

    path('api/', include([
        path('interactions/', include('apps.interactions.urls')),
        path('comments/', include('apps.comments.urls')),
        path('notifications/', include('apps.notifications.urls')),
        path('communities/', include('apps.communities.urls')),
    ])),
]
