"""결제선생 콜백 검증 및 파싱

콜백 승인 상태(appr_state)
- F, A, 0000: 결제 완료
- W, N: 결제 실패
- C, D: 결제 취소

상태 조회 API(/if/bill/check) 승인 상태
- 00, 10: 결제 완료
- 20, 21: 결제 취소
- 30, 31: 결제 실패
"""

import enum
import hmac
from dataclasses import dataclass

from django.conf import settings

from apps.common.utils import parse_gateway_datetime
from apps.payments.models import Payment


class CallbackOutcome(enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


CALLBACK_STATES = {
    "F": CallbackOutcome.SUCCESS,
    "A": CallbackOutcome.SUCCESS,
    "0000": CallbackOutcome.SUCCESS,
    "W": CallbackOutcome.FAILURE,
    "N": CallbackOutcome.FAILURE,
    "C": CallbackOutcome.CANCELLED,
    "D": CallbackOutcome.CANCELLED,
}

CHECK_STATES = {
    "00": CallbackOutcome.SUCCESS,
    "10": CallbackOutcome.SUCCESS,
    "20": CallbackOutcome.CANCELLED,
    "21": CallbackOutcome.CANCELLED,
    "30": CallbackOutcome.FAILURE,
    "31": CallbackOutcome.FAILURE,
}


@dataclass(frozen=True)
class ApprovalInfo:
    state: str = ""
    approved_at: object = None
    pay_type: str = ""
    issuer: str = ""
    issuer_number: str = ""
    approval_number: str = ""
    price: str = ""

    @classmethod
    def from_payload(cls, data):
        # 게이트웨이 값이 컬럼 길이를 넘으면 잘라서 저장
        return cls(
            state=_clip(data.get("appr_state"), "approval_state"),
            approved_at=parse_gateway_datetime(data.get("appr_dt")),
            pay_type=_clip(data.get("appr_pay_type"), "approval_pay_type"),
            issuer=_clip(data.get("appr_issuer"), "approval_issuer"),
            issuer_number=_clip(data.get("appr_issuer_num"), "approval_issuer_number"),
            approval_number=_clip(data.get("appr_num"), "approval_number"),
            price=str(data.get("appr_price") or ""),
        )


def _clip(value, field_name):
    return str(value or "")[: Payment._meta.get_field(field_name).max_length]


def verify_callback(payload):
    """콜백의 apikey가 설정된 API 키와 일치하는지 확인 (상수 시간 비교)"""
    expected = settings.PAYSSAM_API_KEY
    received = payload.get("apikey")

    if not expected or not isinstance(received, str):
        return False
    return hmac.compare_digest(received.encode(), expected.encode())


def parse_callback(payload):
    """콜백 본문을 (bill_id, outcome, approval, message)로 변환"""
    approval = ApprovalInfo.from_payload(payload)
    outcome = CALLBACK_STATES.get(approval.state, CallbackOutcome.UNKNOWN)
    return str(payload.get("bill_id") or ""), outcome, approval, payload.get("msg") or ""


def parse_check_result(data):
    """상태 조회 응답을 (outcome, approval)로 변환"""
    approval = ApprovalInfo.from_payload(data)
    return CHECK_STATES.get(approval.state, CallbackOutcome.UNKNOWN), approval
