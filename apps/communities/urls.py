# apps/communities/urls.py
from rest_framework.routers import SimpleRouter
from .views import DiscussionViewSet, MembershipViewSet, PingViewSet


app_name = 'communities'
router = SimpleRouter()
router.register(r'membership', MembershipViewSet, basename='membership')
router.register(r'pings', PingViewSet, basename='ping')
router.register(r'discussions', DiscussionViewSet, basename='discussion')

urlpatterns = router.urls
