from django.urls import path

from apps.payments import views

urlpatterns = [
    # 결제선생 콜백
    path("callback/", views.PaymentCallbackView.as_view(), name="payment-callback"),
    # 결제 상태 조회 (폴링)
    path("status/<str:bill_id>/", views.PaymentStatusView.as_view(), name="payment-status"),
    # 내 결제 내역
    path("history/", views.PaymentHistoryView.as_view(), name="payment-history"),
    # 관리자 상태 확인
    path("<int:payment_id>/check-status/", views.PaymentCheckStatusView.as_view(), name="payment-check-status"),
]
