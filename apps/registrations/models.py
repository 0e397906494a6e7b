from django.conf import settings
from django.db import models
from django.db.models import Q

from apps.common.models import BaseModel, StatusTransitionMixin
from apps.courses.models import Course, CourseSchedule
from apps.payments.models import Payment


class EnrollmentStatus(models.TextChoices):
    PENDING = "pending", "결제 대기"
    PROCESSING = "processing", "결제 진행중"
    CONFIRMED = "confirmed", "수강 확정"
    COMPLETED = "completed", "수강 완료"
    CANCELLED = "cancelled", "취소"


ENROLLMENT_TRANSITIONS = {
    "pending": {"processing", "confirmed", "cancelled"},
    "processing": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

# 같은 (회원, 강의, 기수)에 대해 동시에 하나만 존재할 수 있는 상태
ACTIVE_ENROLLMENT_STATUSES = ["pending", "processing", "confirmed"]
OPEN_ENROLLMENT_STATUSES = ["pending", "processing"]


class Enrollment(StatusTransitionMixin, BaseModel):
    """수강 신청 모델.

    회원이 특정 강의 기수를 신청한 정보를 저장.
    유료 강의는 결제(Payment) 1건과 연결되며, 취소된 신청은 이력으로 남는다.
    """

    TRANSITIONS = ENROLLMENT_TRANSITIONS

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="enrollments")
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="enrollments")
    schedule = models.ForeignKey(CourseSchedule, on_delete=models.CASCADE, related_name="enrollments")
    payment = models.OneToOneField(
        Payment, on_delete=models.SET_NULL, null=True, blank=True, related_name="enrollment"
    )
    status = models.CharField(max_length=20, choices=EnrollmentStatus.choices, default=EnrollmentStatus.PENDING)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "enrollment"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "course", "schedule"],
                condition=Q(status__in=ACTIVE_ENROLLMENT_STATUSES),
                name="unique_active_enrollment",
            )
        ]

    def __str__(self):
        return f"{self.user} - {self.schedule} ({self.status})"


class EnrollmentSlot(models.Model):
    """(회원, 강의, 기수) 단위 잠금용 행.

    수강신청 처리 시 SELECT ... FOR UPDATE 로 잠가 같은 신청이 동시에 처리되지 않도록 한다.
    """

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="+")
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="+")
    schedule = models.ForeignKey(CourseSchedule, on_delete=models.CASCADE, related_name="+")

    class Meta:
        db_table = "enrollment_slot"
        constraints = [
            models.UniqueConstraint(fields=["user", "course", "schedule"], name="unique_enrollment_slot")
        ]
