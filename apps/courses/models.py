from django.db import models

from apps.common.models import BaseModel


class Course(BaseModel):
    title = models.CharField(max_length=100)  # 과정명
    price = models.PositiveIntegerField(default=0)  # 수강료 (원, 0이면 무료 강의)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.title  # 과정명을 출력

    @property
    def is_free(self):
        return self.price == 0

    class Meta:
        db_table = "course"


class ScheduleStatus(models.TextChoices):
    SCHEDULED = "scheduled", "모집중"
    ONGOING = "ongoing", "진행중"
    COMPLETED = "completed", "종료"
    CANCELLED = "cancelled", "취소"


# 일정 상태는 앞으로만 이동한다 (completed -> scheduled 같은 역행 금지)
SCHEDULE_TRANSITIONS = {
    "scheduled": {"ongoing", "cancelled"},
    "ongoing": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}


class CourseSchedule(BaseModel):
    """강의 기수(cohort) 일정.

    일정 생성/상태 변경은 강의 관리 및 스케줄러가 담당하며,
    수강신청/결제 코어에서는 읽기 전용으로 사용한다.
    """

    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="schedules")
    cohort = models.PositiveSmallIntegerField(default=1)  # 기수
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    status = models.CharField(max_length=20, choices=ScheduleStatus.choices, default=ScheduleStatus.SCHEDULED)

    def __str__(self):
        return f"{self.course.title} {self.cohort}기"

    def save(self, *args, **kwargs):
        """상태 역행 방지"""
        if self.pk:
            old_status = CourseSchedule.objects.filter(pk=self.pk).values_list("status", flat=True).first()
            if old_status and old_status != self.status:
                if str(self.status) not in SCHEDULE_TRANSITIONS[old_status]:
                    raise ValueError(f"일정 상태를 {old_status}에서 {self.status}(으)로 되돌릴 수 없습니다.")

        super().save(*args, **kwargs)

    class Meta:
        db_table = "course_schedule"
        ordering = ["course", "cohort"]
