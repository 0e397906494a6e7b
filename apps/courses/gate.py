"""수강신청 가능 여부 판단.

일정(기수)의 상태만 보고 결정하는 순수 함수들이다. 수강신청 처리 과정에서는
트랜잭션 안에서 일정을 다시 읽어 한 번 더 검사한다.
"""

from apps.courses.exceptions import ScheduleClosed
from apps.courses.models import ScheduleStatus

CLOSED_REASONS = {
    ScheduleStatus.ONGOING.value: "이미 진행중인 강의는 수강신청이 마감되었습니다.",
    ScheduleStatus.COMPLETED.value: "이미 종료된 강의입니다.",
    ScheduleStatus.CANCELLED.value: "취소된 강의입니다.",
}


def can_purchase(schedule):
    """일정에 새 수강신청을 받을 수 있는지 확인.

    Args:
        schedule (CourseSchedule): 확인할 일정.

    Returns:
        tuple[bool, str | None]: (가능 여부, 불가 사유).
    """
    reason = CLOSED_REASONS.get(str(schedule.status))
    if reason:
        return False, reason
    return True, None


def ensure_purchasable(schedule):
    """수강신청이 불가능한 일정이면 ScheduleClosed 예외를 발생시킨다."""
    ok, reason = can_purchase(schedule)
    if not ok:
        raise ScheduleClosed(reason)
