import logging

from drf_spectacular.utils import OpenApiExample, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.permissions import IsOwnerOrStaff
from apps.registrations.ledger import check_payment_status, handle_gateway_callback

from .callbacks import parse_callback, verify_callback
from .exceptions import PaymentNotFound
from .models import Payment
from .serializers import PaymentCheckResultSerializer, PaymentHistorySerializer, PaymentStatusSerializer

logger = logging.getLogger(__name__)


class PaymentCallbackView(APIView):
    """결제선생 결제 결과 콜백(웹훅) API.

    결제선생이 결제 완료/실패/취소 시 호출한다. 같은 결과가 여러 번 전달될 수 있으므로
    이미 처리된 결제는 성공 응답만 돌려준다.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        summary="결제선생 콜백",
        description="결제선생에서 결제 결과를 전달받는 웹훅입니다.",
        request=None,
        responses={
            200: OpenApiExample("성공 예시", value={"code": "0000", "msg": "정상 처리되었습니다."}),
            401: OpenApiExample("오류 예시", value={"code": "9999", "msg": "잘못된 API 키"}),
            404: OpenApiExample("오류 예시", value={"code": "9999", "msg": "결제 정보를 찾을 수 없습니다."}),
        },
        tags=["Payment"],
    )
    def post(self, request):
        payload = request.data.dict() if hasattr(request.data, "dict") else dict(request.data)

        if not verify_callback(payload):
            logger.error("잘못된 API 키로 콜백 수신: bill_id=%s", payload.get("bill_id"))
            return Response({"code": "9999", "msg": "잘못된 API 키"}, status=status.HTTP_401_UNAUTHORIZED)

        bill_id, outcome, approval, message = parse_callback(payload)
        raw = {key: value for key, value in payload.items() if key != "apikey"}

        try:
            result = handle_gateway_callback(bill_id, outcome, approval, message, raw=raw)
        except PaymentNotFound as e:
            return Response({"code": "9999", "msg": str(e)}, status=status.HTTP_404_NOT_FOUND)

        if result.is_duplicate:
            return Response({"code": "0000", "msg": "이미 처리된 결제입니다."}, status=status.HTTP_200_OK)
        return Response({"code": "0000", "msg": "정상 처리되었습니다."}, status=status.HTTP_200_OK)


# -----------------------------------------------------------------------------------------------------------------------
# -----------------------------------------------------------------------------------------------------------------------


class PaymentStatusView(APIView):
    """결제 상태 조회 API (본인 결제만)."""

    permission_classes = [IsOwnerOrStaff]

    @extend_schema(
        summary="결제 상태 조회",
        description="청구서 ID로 결제 상태를 조회합니다. 결제 페이지 이동 후 결과 확인에 사용합니다.",
        responses={
            200: PaymentStatusSerializer,
            404: OpenApiExample("오류 예시", value={"error": "결제 정보를 찾을 수 없습니다."}),
        },
        tags=["Payment"],
    )
    def get(self, request, bill_id):
        payment = Payment.objects.select_related("course").filter(bill_id=bill_id).first()
        if payment is None:
            raise PaymentNotFound()

        self.check_object_permissions(request, payment)
        return Response(PaymentStatusSerializer(payment).data, status=status.HTTP_200_OK)


class PaymentHistoryView(APIView):
    """내 결제 내역 조회 API."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="결제 내역",
        description="로그인한 사용자의 결제 내역을 최신순으로 조회합니다.",
        responses={200: PaymentHistorySerializer(many=True)},
        tags=["Payment"],
    )
    def get(self, request):
        payments = Payment.objects.filter(user=request.user).select_related("course")
        return Response(PaymentHistorySerializer(payments, many=True).data, status=status.HTTP_200_OK)


# -----------------------------------------------------------------------------------------------------------------------
# -----------------------------------------------------------------------------------------------------------------------


class PaymentCheckStatusView(APIView):
    """관리자용 결제 상태 조회 API.

    결제선생 상태 조회 API로 실제 결제 상태를 확인하고, 콜백이 누락된 경우 상태를 보정한다.
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        summary="결제 상태 확인 (관리자)",
        description="결제선생에 결제 상태를 조회해 반영합니다.",
        request=None,
        responses={
            200: PaymentCheckResultSerializer,
            404: OpenApiResponse(description="결제 정보 없음"),
            503: OpenApiResponse(description="결제선생 연결 실패"),
        },
        tags=["Payment"],
    )
    def post(self, request, payment_id):
        result = check_payment_status(payment_id)
        body = PaymentCheckResultSerializer(result).data
        body["detail"] = (
            f"결제 상태가 {result.status}(으)로 업데이트되었습니다." if result.changed else "결제 상태 변경 없음"
        )
        return Response(body, status=status.HTTP_200_OK)
