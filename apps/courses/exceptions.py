from apps.common.exceptions import ServiceError


class ScheduleClosed(ServiceError):
    default_detail = "수강신청이 마감된 일정입니다."
    default_code = "schedule_closed"
