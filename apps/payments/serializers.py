from rest_framework import serializers

from .models import Payment


class PaymentStatusSerializer(serializers.ModelSerializer):
    """결제 상태 조회 Serializer (결제 페이지 이동 후 폴링용)"""

    course_title = serializers.CharField(source="course.title", read_only=True)
    enrollment_status = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            "id",
            "bill_id",
            "course",
            "course_title",
            "amount",
            "status",
            "bill_url",
            "fail_message",
            "approval_pay_type",
            "approved_at",
            "paid_at",
            "enrollment_status",
        ]

    def get_enrollment_status(self, obj):
        enrollment = getattr(obj, "enrollment", None)
        return enrollment.status if enrollment else None


class PaymentHistorySerializer(serializers.ModelSerializer):
    """결제 내역 Serializer"""

    course_title = serializers.CharField(source="course.title", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "bill_id",
            "course_title",
            "amount",
            "status",
            "approval_pay_type",
            "approval_issuer",
            "paid_at",
            "refund_amount",
            "refund_reason",
            "refunded_at",
            "created_at",
        ]


class PaymentCheckResultSerializer(serializers.Serializer):
    """관리자 결제 상태 조회 결과 Serializer"""

    payment_id = serializers.IntegerField()
    previous_status = serializers.CharField()
    status = serializers.CharField()
    approval_state = serializers.CharField()
    changed = serializers.BooleanField()
