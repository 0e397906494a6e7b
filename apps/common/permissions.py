from rest_framework.permissions import BasePermission


def is_owner_or_staff(user, obj):
    """객체의 소유자이거나 관리자(스태프)인지 판단.

    Args:
        user: 요청한 사용자.
        obj: ``user_id`` 속성을 가진 모델 인스턴스.

    Returns:
        bool: 접근 가능하면 True.
    """
    if not user or not user.is_authenticated:
        return False
    return user.is_staff or obj.user_id == user.pk


class IsOwnerOrStaff(BasePermission):
    """본인 또는 관리자 전용 접근 권한.

    수강 정보와 결제 정보는 본인만 조회/취소할 수 있으며,
    관리자는 모든 정보에 접근할 수 있다.

    Attributes:
        message (str): 권한 거부 시 반환할 메시지.
    """

    message = "본인의 수강/결제 정보만 접근할 수 있습니다."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        return is_owner_or_staff(request.user, obj)
