from drf_spectacular.utils import OpenApiExample, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .ledger import cancel_enrollment, preview_cancel, request_enrollment
from .models import Enrollment
from .serializers import (
    CancelPreviewSerializer,
    CancelResultSerializer,
    EnrollmentRequestSerializer,
    EnrollmentSerializer,
)


class EnrollmentRegistrationView(APIView):
    """수강 신청 API.

    무료 강의는 즉시 수강이 확정되고, 유료 강의는 결제선생 결제 요청이 발송된다.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="수강 신청",
        description="강의 기수를 신청합니다. 유료 강의는 결제 페이지 URL을 함께 반환합니다.",
        request=EnrollmentRequestSerializer,
        responses={
            201: OpenApiResponse(
                description="수강 신청 완료 또는 결제 요청 완료",
                examples=[
                    OpenApiExample(
                        "유료 강의",
                        value={
                            "detail": "결제 요청이 전송되었습니다.",
                            "is_free": False,
                            "bill_id": "00000000000001123456",
                            "payment_url": "https://payssam.kr/p/abc",
                            "enrollment": {"id": 1, "status": "pending"},
                        },
                    )
                ],
            ),
            400: OpenApiExample("오류 예시", value={"error": "이미 진행중인 강의는 수강신청이 마감되었습니다."}),
            503: OpenApiExample("오류 예시", value={"error": "결제 서비스에 연결할 수 없습니다. 잠시 후 다시 시도해 주세요."}),
        },
        tags=["Enrollment"],
    )
    def post(self, request):
        """수강 신청을 처리.

        Args:
            request (Request): 요청 객체.

        Returns:
            Response: 신청 결과. 유료 강의는 bill_id와 payment_url 포함.
        """
        serializer = EnrollmentRequestSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = request_enrollment(
            user=request.user,
            course=data["course"],
            schedule=data["schedule"],
            contact=data["contact"],
        )

        body = {
            "detail": "수강 신청이 완료되었습니다." if result.is_free else "결제 요청이 전송되었습니다.",
            "is_free": result.is_free,
            "enrollment": EnrollmentSerializer(result.enrollment).data,
        }
        if not result.is_free:
            body["bill_id"] = result.payment.bill_id
            body["payment_url"] = result.bill_url

        return Response(body, status=status.HTTP_201_CREATED)


# -----------------------------------------------------------------------------------------------------------------------
# -----------------------------------------------------------------------------------------------------------------------


class MyEnrollmentListView(APIView):
    """내 수강 신청 목록 조회 API."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="내 수강 신청 목록",
        description="로그인한 사용자의 수강 신청 목록과 결제 상태를 조회합니다.",
        responses={200: EnrollmentSerializer(many=True)},
        tags=["Enrollment"],
    )
    def get(self, request):
        enrollments = Enrollment.objects.filter(user=request.user).select_related("course", "schedule", "payment")
        serializer = EnrollmentSerializer(enrollments, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)


# -----------------------------------------------------------------------------------------------------------------------
# -----------------------------------------------------------------------------------------------------------------------


class EnrollmentCancelView(APIView):
    """수강 취소 API.

    GET은 환불 예상 금액을 조회하고, POST는 실제로 취소한다.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="수강 취소 환불 금액 조회",
        description="수강 취소 시 환불받을 수 있는 금액을 미리 조회합니다. 상태는 바뀌지 않습니다.",
        responses={200: CancelPreviewSerializer},
        tags=["Enrollment"],
    )
    def get(self, request, enrollment_id):
        preview = preview_cancel(enrollment_id, actor=request.user)
        return Response(CancelPreviewSerializer(preview).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="수강 취소",
        description="수강을 취소합니다. 환불 금액은 수강 진행 정도에 따라 계산됩니다.",
        request=None,
        responses={
            200: CancelResultSerializer,
            400: OpenApiExample("오류 예시", value={"error": "이미 취소된 수강입니다."}),
            403: OpenApiExample("오류 예시", value={"detail": "본인의 수강만 취소할 수 있습니다."}),
            404: OpenApiExample("오류 예시", value={"error": "수강 신청 정보를 찾을 수 없습니다."}),
        },
        tags=["Enrollment"],
    )
    def post(self, request, enrollment_id):
        """수강 취소 처리.

        Args:
            request (Request): 요청 객체.
            enrollment_id (int): 취소할 수강 신청 ID.

        Returns:
            Response: 취소 결과와 환불 내역.
        """
        result = cancel_enrollment(enrollment_id, actor=request.user)
        body = CancelResultSerializer(result).data
        body["detail"] = "수강이 취소되었습니다."
        return Response(body, status=status.HTTP_200_OK)
