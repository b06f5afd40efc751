# apps/notifications/urls.py
from rest_framework.routers import SimpleRouter
from .views import NotificationViewSet


app_name = 'notifications'
router = SimpleRouter()

# Notifications list + actions
router.register(r'', NotificationViewSet, basename='notification')

urlpatterns = router.urls
