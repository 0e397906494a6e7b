from apps.common.exceptions import NotFound, ServiceError


class AlreadyEnrolled(ServiceError):
    default_detail = "이미 수강 신청이 완료된 강의입니다."
    default_code = "already_enrolled"


class AlreadyTerminal(ServiceError):
    """이미 취소/완료되어 더 이상 처리할 수 없는 경우."""

    default_detail = "이미 처리가 완료된 수강 신청입니다."
    default_code = "already_terminal"


class EnrollmentNotFound(NotFound):
    default_detail = "수강 신청 정보를 찾을 수 없습니다."
    default_code = "enrollment_not_found"
