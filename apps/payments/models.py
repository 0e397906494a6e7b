from django.conf import settings
from django.db import models

from apps.common.models import BaseModel, StatusTransitionMixin
from apps.courses.models import Course


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "결제 대기"
    PROCESSING = "processing", "결제 진행중"
    CONFIRMED = "confirmed", "결제 완료"
    FAILED = "failed", "결제 실패"
    CANCELLED = "cancelled", "결제 취소"
    REFUNDED = "refunded", "환불 완료"


# pending -> confirmed 는 게이트웨이 응답 기록보다 콜백이 먼저 도착한 경우
PAYMENT_TRANSITIONS = {
    "pending": {"processing", "confirmed", "failed", "cancelled"},
    "processing": {"confirmed", "failed", "cancelled"},
    "confirmed": {"refunded"},
    "failed": set(),
    "cancelled": set(),
    "refunded": set(),
}

# 게이트웨이 콜백 관점에서 더 이상 결과가 바뀌지 않는 상태
TERMINAL_PAYMENT_STATUSES = {"confirmed", "failed", "cancelled", "refunded"}
OPEN_PAYMENT_STATUSES = {"pending", "processing"}


class Payment(StatusTransitionMixin, BaseModel):
    """결제 모델.

    수강신청 1건(Enrollment)에 대응하는 결제 요청 1건을 저장.
    금액은 생성 후 변경할 수 없으며, 결제 승인 정보는 결제 완료 시에만 채워진다.
    """

    TRANSITIONS = PAYMENT_TRANSITIONS

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="payments")
    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name="payments")
    amount = models.PositiveIntegerField()  # 결제 금액 (원)
    status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)

    # 결제선생 청구서 정보
    bill_id = models.CharField(max_length=20, unique=True, null=True, blank=True)
    bill_url = models.URLField(max_length=500, blank=True, default="")
    payer_name = models.CharField(max_length=30)
    payer_phone = models.CharField(max_length=11)  # 정규화된 휴대폰 번호 (하이픈 없음)
    description = models.CharField(max_length=200, blank=True, default="")
    customer_memo = models.CharField(max_length=500, blank=True, default="")
    fail_message = models.CharField(max_length=500, blank=True, default="")

    # 결제 승인 정보 (결제 완료 시에만 채워짐)
    approval_state = models.CharField(max_length=10, blank=True, default="")
    approved_at = models.DateTimeField(null=True, blank=True)
    approval_pay_type = models.CharField(max_length=20, blank=True, default="")
    approval_issuer = models.CharField(max_length=50, blank=True, default="")
    approval_issuer_number = models.CharField(max_length=50, blank=True, default="")
    approval_number = models.CharField(max_length=50, blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)

    # 환불 감사(audit) 정보
    refund_rate = models.DecimalField(max_digits=5, decimal_places=4, null=True, blank=True)
    refund_amount = models.PositiveIntegerField(null=True, blank=True)
    refund_reason = models.CharField(max_length=100, blank=True, default="")
    refunded_at = models.DateTimeField(null=True, blank=True)
    refund_error = models.CharField(max_length=500, blank=True, default="")

    class Meta:
        db_table = "payment"
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["status", "created_at"])]

    def __str__(self):
        return f"{self.bill_id or self.pk} ({self.amount:,}원, {self.status})"

    @property
    def is_terminal(self):
        return self.status in TERMINAL_PAYMENT_STATUSES

    def save(self, *args, **kwargs):
        """결제 금액 변경 방지"""
        if self.pk:
            old_amount = Payment.objects.filter(pk=self.pk).values_list("amount", flat=True).first()
            if old_amount is not None and old_amount != self.amount:
                raise ValueError("결제 금액은 생성 후 변경할 수 없습니다.")

        super().save(*args, **kwargs)

    def apply_approval(self, approval, paid_at):
        """결제 승인 정보를 기록 (결제 완료 시)"""
        self.approval_state = approval.state
        self.approved_at = approval.approved_at
        self.approval_pay_type = approval.pay_type
        self.approval_issuer = approval.issuer
        self.approval_issuer_number = approval.issuer_number
        self.approval_number = approval.approval_number
        self.paid_at = paid_at


class PaymentCallbackLog(BaseModel):
    """검증을 통과한 결제선생 콜백/상태조회 응답 원본 기록."""

    class Source(models.TextChoices):
        CALLBACK = "callback", "콜백"
        RECONCILE = "reconcile", "상태 조회"

    payment = models.ForeignKey(Payment, on_delete=models.SET_NULL, null=True, related_name="callback_logs")
    bill_id = models.CharField(max_length=20, db_index=True)
    source = models.CharField(max_length=20, choices=Source.choices, default=Source.CALLBACK)
    approval_state = models.CharField(max_length=10, blank=True, default="")
    message = models.CharField(max_length=500, blank=True, default="")
    raw_data = models.JSONField(default=dict, blank=True)
    is_duplicate = models.BooleanField(default=False)

    class Meta:
        db_table = "payment_callback_log"
        ordering = ["-created_at"]
