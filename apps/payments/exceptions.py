from rest_framework import status

from apps.common.exceptions import NotFound, ServiceError


class InvalidContactInfo(ServiceError):
    default_detail = "올바른 전화번호 형식이 아닙니다. (010으로 시작하는 11자리)"
    default_code = "invalid_contact_info"


class GatewayError(ServiceError):
    """결제선생 연동 오류의 공통 부모 클래스."""

    default_detail = "결제 요청 중 오류가 발생했습니다."
    default_code = "gateway_error"


class GatewayRejected(GatewayError):
    """결제선생이 요청을 명시적으로 거절한 경우 (우리 요청의 문제)."""

    default_detail = "결제 요청이 실패했습니다."
    default_code = "gateway_rejected"


class GatewayUnreachable(GatewayError):
    """타임아웃/네트워크 오류/5xx 등 결제선생 서비스 장애."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "결제 서비스에 연결할 수 없습니다. 잠시 후 다시 시도해 주세요."
    default_code = "gateway_unreachable"


class PaymentNotFound(NotFound):
    default_detail = "결제 정보를 찾을 수 없습니다."
    default_code = "payment_not_found"
