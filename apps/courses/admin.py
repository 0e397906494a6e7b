from django.contrib import admin

from ..common.admin import BaseModelAdmin
from .models import Course, CourseSchedule


class CourseScheduleInline(admin.TabularInline):
    model = CourseSchedule
    extra = 0
    fields = ("cohort", "start_date", "end_date", "status")


@admin.register(Course)
class CourseAdmin(BaseModelAdmin):
    list_display = ("title", "price", "is_active", "created_at")
    search_fields = ("title",)
    list_filter = ("is_active",)
    inlines = [CourseScheduleInline]


@admin.register(CourseSchedule)
class CourseScheduleAdmin(BaseModelAdmin):
    list_display = ("course", "cohort", "start_date", "end_date", "status")
    search_fields = ("course__title",)
    list_filter = ("status",)
