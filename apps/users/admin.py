from django.contrib import admin, messages
from django.contrib.auth.hashers import make_password
from django.core.exceptions import ValidationError
from django_softdelete.admin import GlobalObjectsModelAdmin
from django_softdelete.models import SoftDeleteModel

from apps.common.admin import BaseModelAdmin
from apps.registrations.models import Enrollment

from .models import User


class EnrollmentInline(admin.TabularInline):
    """회원의 수강 신청 이력 (조회 전용)"""

    model = Enrollment
    fk_name = "user"
    extra = 0
    can_delete = False
    fields = ("course", "schedule", "status", "payment", "created_at", "cancelled_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(User)
class UserAdmin(BaseModelAdmin, GlobalObjectsModelAdmin):
    list_display = ("email", "name", "nickname", "phone_number", "is_staff", "is_active", "deleted_at")
    search_fields = ("email", "name", "nickname", "phone_number")
    list_filter = ("is_active", "is_staff", "is_superuser", "deleted_at")
    inlines = [EnrollmentInline]

    def get_form(self, request, obj=None, **kwargs):
        form = super().get_form(request, obj, **kwargs)

        # 슈퍼유저가 아닐 경우 권한 필드를 비활성화
        if not request.user.is_superuser:
            form.base_fields["is_superuser"].disabled = True
            form.base_fields["is_staff"].disabled = True
        return form

    def save_model(self, request, obj, form, change):
        """
        1) 최후의 superuser가 해제되지 않도록 방지
        2) 유저 생성 시 비밀번호 해쉬화
        """
        if change and "is_superuser" in form.changed_data:
            if not obj.is_superuser and User.objects.filter(is_superuser=True).count() == 1:
                raise ValidationError("최소 1명의 superuser는 있어야 합니다.")

        if "password" in form.changed_data:
            obj.password = make_password(obj.password)

        super().save_model(request, obj, form, change)

    def delete_model(self, request, obj):
        """관리자 화면에서의 삭제는 소프트 삭제로 처리 (수강/결제 이력 보존)"""
        if isinstance(obj, SoftDeleteModel):
            obj.delete()
        messages.success(request, "탈퇴 처리되었습니다. 수강/결제 이력은 보존됩니다.")
