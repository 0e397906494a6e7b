from rest_framework import serializers

from apps.courses.models import CourseSchedule
from apps.payments.exceptions import InvalidContactInfo
from apps.payments.signer import ContactInfo, normalize_phone_number

from .models import Enrollment


class EnrollmentRequestSerializer(serializers.Serializer):
    """수강 신청 요청 Serializer.

    Attributes:
        schedule_id: 신청할 기수(일정) ID.
        course_id: 강의 ID (일정의 강의와 일치해야 함).
        payer_name: 결제자 이름 (유료 강의).
        payer_phone: 결제 안내를 받을 휴대폰 번호 (유료 강의).
        memo: 고객 메모.
    """

    course_id = serializers.IntegerField()
    schedule_id = serializers.IntegerField()
    payer_name = serializers.CharField(max_length=30, required=False, allow_blank=True)
    payer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    memo = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        schedule = CourseSchedule.objects.select_related("course").filter(pk=attrs["schedule_id"]).first()
        if schedule is None or schedule.course_id != attrs["course_id"]:
            raise serializers.ValidationError({"schedule_id": "강의 일정을 찾을 수 없습니다."})

        course = schedule.course
        if not course.is_active:
            raise serializers.ValidationError({"course_id": "신청할 수 없는 강의입니다."})

        user = self.context["request"].user
        name = attrs.get("payer_name") or user.name
        phone = attrs.get("payer_phone") or user.phone_number

        if not course.is_free:
            try:
                phone = normalize_phone_number(phone)
            except InvalidContactInfo as e:
                raise serializers.ValidationError({"payer_phone": str(e)})

        attrs["course"] = course
        attrs["schedule"] = schedule
        attrs["contact"] = ContactInfo(name=name, phone=phone or "", memo=attrs.get("memo", ""))
        return attrs


class EnrollmentSerializer(serializers.ModelSerializer):
    """수강 신청 조회 Serializer (결제 상태 폴링용)"""

    course_title = serializers.CharField(source="course.title", read_only=True)
    cohort = serializers.IntegerField(source="schedule.cohort", read_only=True)
    start_date = serializers.DateTimeField(source="schedule.start_date", read_only=True)
    end_date = serializers.DateTimeField(source="schedule.end_date", read_only=True)
    payment_status = serializers.CharField(source="payment.status", read_only=True, default=None)
    amount = serializers.IntegerField(source="payment.amount", read_only=True, default=0)
    bill_url = serializers.CharField(source="payment.bill_url", read_only=True, default="")

    class Meta:
        model = Enrollment
        fields = [
            "id",
            "course",
            "course_title",
            "schedule",
            "cohort",
            "start_date",
            "end_date",
            "status",
            "payment_status",
            "amount",
            "bill_url",
            "created_at",
            "cancelled_at",
        ]


class CancelPreviewSerializer(serializers.Serializer):
    """수강 취소 환불 예상 금액 Serializer"""

    enrollment_id = serializers.IntegerField()
    can_cancel = serializers.BooleanField()
    is_free = serializers.BooleanField()
    original_amount = serializers.IntegerField()
    refund_amount = serializers.IntegerField()
    refund_rate = serializers.SerializerMethodField()
    refund_reason = serializers.CharField()
    schedule_start = serializers.DateTimeField()
    schedule_end = serializers.DateTimeField()

    def get_refund_rate(self, obj):
        return round(float(obj.refund_rate), 4)


class CancelResultSerializer(serializers.Serializer):
    """수강 취소 결과 Serializer"""

    enrollment_id = serializers.IntegerField(source="enrollment.pk")
    status = serializers.CharField(source="enrollment.status")
    payment_status = serializers.SerializerMethodField()
    refund_amount = serializers.IntegerField(source="refund.amount")
    refund_rate = serializers.SerializerMethodField()
    refund_reason = serializers.CharField(source="refund.reason")

    def get_payment_status(self, obj):
        return obj.payment.status if obj.payment else None

    def get_refund_rate(self, obj):
        return round(float(obj.refund.rate), 4)
