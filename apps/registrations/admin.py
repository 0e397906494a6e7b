from django.contrib import admin

from apps.common.admin import BaseModelAdmin

from .models import Enrollment


@admin.register(Enrollment)
class EnrollmentAdmin(BaseModelAdmin):
    """Enrollment 모델 관리자.

    상태 변경은 수강신청/결제 처리 로직에서만 하므로 관리자 화면에서는 조회만 한다.
    """

    list_display = ("id", "course_title", "cohort", "user", "status", "payment", "created_at", "cancelled_at")
    list_filter = ("status",)
    search_fields = ("course__title", "user__email", "user__name")
    readonly_fields = ("user", "course", "schedule", "payment", "status", "cancelled_at", "created_at", "updated_at")

    def course_title(self, obj):
        """연결된 강의의 제목을 반환.

        Args:
            obj (Enrollment): Enrollment 인스턴스.

        Returns:
            str: 연결된 강의의 제목.
        """
        return obj.course.title

    course_title.short_description = "강의"

    def cohort(self, obj):
        return f"{obj.schedule.cohort}기"

    cohort.short_description = "기수"
