from rest_framework.exceptions import APIException


class InvalidStatusTransition(Exception):
    """상태 전이표에 없는 전이를 시도한 경우 (코드 오류)."""


class ServiceError(APIException):
    """수강신청/결제 처리 중 발생하는 오류의 공통 부모 클래스.

    DRF 예외 핸들러가 그대로 응답으로 변환하며, 응답 본문은 항상
    ``{"error": <메시지>}`` 형태를 가진다.
    """

    status_code = 400
    default_detail = "잘못된 요청입니다."
    default_code = "invalid"

    def __init__(self, detail=None):
        if detail is None:
            detail = self.default_detail
        self.message = str(detail)
        super().__init__({"error": detail})

    def __str__(self):
        return self.message


class NotFound(ServiceError):
    status_code = 404
    default_detail = "요청한 정보를 찾을 수 없습니다."
    default_code = "not_found"
