import logging

import requests
from django.conf import settings

from apps.payments.exceptions import GatewayRejected, GatewayUnreachable
from apps.payments.signer import make_cancel_hash

logger = logging.getLogger(__name__)

SUCCESS_CODE = "0000"


class PaySsamClient:
    """결제선생(PaySsam) API 클라이언트.

    청구서 발송, 상태 조회, 결제 취소 세 가지 API를 호출한다.
    재시도는 하지 않으며, 호출 실패는 아래 두 가지 예외로만 전달된다.

    - GatewayUnreachable: 타임아웃, 연결 오류, 5xx 응답
    - GatewayRejected: 4xx 응답 또는 code가 "0000"이 아닌 응답
    """

    def __init__(self, base_url, api_key, member, merchant, timeout=30):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.member = member
        self.merchant = merchant
        self.timeout = timeout

    def _credentials(self):
        return {"apikey": self.api_key, "member": self.member, "merchant": self.merchant}

    def _post(self, path, payload):
        url = f"{self.base_url}{path}"

        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.error("결제선생 API 타임아웃: %s", path)
            raise GatewayUnreachable("결제 서비스 응답 시간이 초과되었습니다.")
        except requests.exceptions.RequestException as e:
            logger.error("결제선생 API 연결 오류: %s (%s)", path, e)
            raise GatewayUnreachable()

        if response.status_code >= 500:
            logger.error("결제선생 API 서버 오류: %s (HTTP %s)", path, response.status_code)
            raise GatewayUnreachable()

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400:
            logger.warning("결제선생 API 요청 거절: %s (HTTP %s) %s", path, response.status_code, data)
            raise GatewayRejected(data.get("msg") or GatewayRejected.default_detail)

        if data.get("code") != SUCCESS_CODE:
            logger.warning("결제선생 API 오류 응답: %s code=%s msg=%s", path, data.get("code"), data.get("msg"))
            raise GatewayRejected(data.get("msg") or GatewayRejected.default_detail)

        return data

    def submit(self, bill_request):
        """청구서 발송 후 결제 페이지 URL 반환"""
        payload = {**self._credentials(), "bill": bill_request.to_payload()}
        logger.info("결제 요청 전송: bill_id=%s price=%s", bill_request.bill_id, bill_request.price)

        data = self._post("/if/bill/send", payload)
        return data.get("payment_url") or data.get("shortURL") or ""

    def check_bill(self, bill_id):
        """청구서 상태 조회. 응답의 data(appr_state 등)를 반환"""
        payload = {**self._credentials(), "bill_id": bill_id}
        logger.info("결제 상태 조회: bill_id=%s", bill_id)

        data = self._post("/if/bill/check", payload)
        return data.get("data") or {}

    def cancel_bill(self, bill_id, price):
        """결제 취소(환불) 요청"""
        payload = {
            **self._credentials(),
            "bill_id": bill_id,
            "price": price,
            "hash": make_cancel_hash(bill_id, price),
        }
        logger.info("결제 취소 요청: bill_id=%s price=%s", bill_id, price)

        return self._post("/if/bill/cancel", payload)


def get_gateway_client():
    return PaySsamClient(
        base_url=settings.PAYSSAM_BASE_URL,
        api_key=settings.PAYSSAM_API_KEY,
        member=settings.PAYSSAM_MEMBER,
        merchant=settings.PAYSSAM_MERCHANT,
        timeout=settings.PAYSSAM_TIMEOUT,
    )
