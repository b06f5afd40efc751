# apps/interactions/urls.py
from rest_framework.routers import SimpleRouter
from .views import InteractionViewSet


app_name = 'interactions'
router = SimpleRouter()
router.register(r'', InteractionViewSet, basename='interaction')

urlpatterns = router.urls
