# apps/comments/urls.py
from rest_framework.routers import SimpleRouter
from .views import CommentViewSet


app_name = 'comments'
router = SimpleRouter()
router.register(r'', CommentViewSet, basename='comment')

urlpatterns = router.urls
