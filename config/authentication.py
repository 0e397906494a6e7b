import logging

from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError

logger = logging.getLogger(__name__)


class CustomJWTAuthentication(JWTAuthentication):
    """쿠키의 access_token을 먼저 확인하고, 없거나 유효하지 않으면 Authorization 헤더로 인증."""

    def authenticate(self, request):
        # 쿠키에서 액세스 토큰 가져오기
        access_token = request.COOKIES.get("access_token")

        if access_token:
            try:
                validated_token = self.get_validated_token(access_token)
                return self.get_user(validated_token), validated_token
            except (AuthenticationFailed, TokenError):
                logger.debug("쿠키의 액세스 토큰이 유효하지 않아 헤더 인증으로 진행")

        # 원래의 헤더 인증 방식도 사용
        return super().authenticate(request)
