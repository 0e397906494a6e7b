from django.urls import path

from .views import (
    EnrollmentCancelView,
    EnrollmentRegistrationView,
    MyEnrollmentListView,
)

urlpatterns = [
    # 수강 신청
    path("enrollments/", EnrollmentRegistrationView.as_view(), name="enrollment-create"),
    # 내 수강 신청 목록
    path("enrollments/my/", MyEnrollmentListView.as_view(), name="enrollment-my"),
    # 수강 취소 (GET: 환불 금액 조회, POST: 취소)
    path("enrollments/<int:enrollment_id>/cancel/", EnrollmentCancelView.as_view(), name="enrollment-cancel"),
]
