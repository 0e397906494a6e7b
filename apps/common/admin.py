from django.contrib import admin


class BaseModelAdmin(admin.ModelAdmin):
    """스태프만 접근 가능한 공통 관리자 클래스. 최신 데이터가 먼저 보인다."""

    ordering = ("-created_at",)
    readonly_fields = ("created_at", "updated_at")

    def has_add_permission(self, request):
        return request.user.is_staff

    def has_change_permission(self, request, obj=None):
        return request.user.is_staff

    def has_delete_permission(self, request, obj=None):
        return request.user.is_superuser

    def has_module_permission(self, request):
        return request.user.is_staff


class ReadOnlyModelAdmin(BaseModelAdmin):
    """이력성 데이터(콜백 로그 등)용 읽기 전용 관리자."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
