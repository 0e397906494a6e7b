"""환불 금액 계산 (이용약관 제9조 기준)

- 수강 시작 전: 전액 환불
- 수강 시작 후 1/3 경과 전: 2/3 해당액 환불
- 수강 시작 후 1/2 경과 전: 1/2 해당액 환불
- 수강 시작 후 1/2 경과 후: 환불 불가

각 구간은 하한 포함, 상한 미포함이다. 경과 비율은 부동소수점 없이
timedelta 정수 연산으로 비교하므로 1/3, 1/2 경계 시점이 정확히 다음 구간으로 넘어간다.
"""

import math
from dataclasses import dataclass
from fractions import Fraction

FULL_REFUND_REASON = "수강 시작 전 취소 (전액 환불)"
TWO_THIRDS_REASON = "수강 시작 후 1/3 경과 전 (2/3 환불)"
HALF_REASON = "수강 시작 후 1/2 경과 전 (1/2 환불)"
NO_REFUND_REASON = "수강 시작 후 1/2 경과 (환불 불가)"
FREE_COURSE_REASON = "무료 강의 (환불 금액 없음)"


@dataclass(frozen=True)
class RefundQuote:
    rate: Fraction
    amount: int
    reason: str

    @property
    def is_refundable(self):
        return self.amount > 0


def compute_refund(amount, schedule_start, schedule_end, now):
    """환불율과 환불 금액을 계산

    :param amount: 결제 금액 (원)
    :param schedule_start: 수강 시작 시각
    :param schedule_end: 수강 종료 시각
    :param now: 기준 시각
    :return: RefundQuote
    """
    if amount == 0:
        return RefundQuote(Fraction(0), 0, FREE_COURSE_REASON)

    if now < schedule_start:
        rate, reason = Fraction(1), FULL_REFUND_REASON
    else:
        elapsed = now - schedule_start
        duration = schedule_end - schedule_start

        if elapsed * 3 < duration:
            rate, reason = Fraction(2, 3), TWO_THIRDS_REASON
        elif elapsed * 2 < duration:
            rate, reason = Fraction(1, 2), HALF_REASON
        else:
            rate, reason = Fraction(0), NO_REFUND_REASON

    return RefundQuote(rate, math.floor(amount * rate), reason)
