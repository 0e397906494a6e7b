"""수강신청/결제 원장(Ledger)

수강신청(Enrollment)과 결제(Payment)의 상태를 바꾸는 유일한 모듈.

결제 요청 흐름
1. 트랜잭션: (회원, 강의, 기수) 잠금 -> 일정 재확인 -> 진행중인 이전 신청 취소 -> 결제/신청 생성
2. 트랜잭션 밖: 청구서 서명 후 결제선생으로 전송 (잠금을 잡은 채로 네트워크 호출하지 않음)
3. 트랜잭션: 결제 행 잠금 -> 전송 결과 기록 (성공: processing, 실패: failed + 신청 취소)

콜백/상태 조회/취소는 모두 결제 행을 잠근 뒤 처리하며, 알림과 게이트웨이 환불 요청은
커밋 이후(on_commit)에만 실행된다.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from functools import partial
from typing import Optional

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from apps.common.exceptions import ServiceError
from apps.common.permissions import is_owner_or_staff
from apps.courses.gate import ensure_purchasable
from apps.courses.models import Course, CourseSchedule
from apps.notifications.dispatcher import notify_enrollment_cancelled, notify_enrollment_confirmed
from apps.payments.callbacks import CallbackOutcome, parse_check_result
from apps.payments.exceptions import GatewayError, GatewayRejected, GatewayUnreachable, PaymentNotFound
from apps.payments.gateway import get_gateway_client
from apps.payments.models import OPEN_PAYMENT_STATUSES, Payment, PaymentCallbackLog, PaymentStatus
from apps.payments.refunds import RefundQuote, compute_refund
from apps.payments.signer import build_bill_request, make_bill_id, normalize_phone_number
from apps.registrations.exceptions import AlreadyEnrolled, AlreadyTerminal, EnrollmentNotFound
from apps.registrations.models import Enrollment, EnrollmentSlot, EnrollmentStatus, OPEN_ENROLLMENT_STATUSES

logger = logging.getLogger(__name__)

UNPAID_CANCEL_REASON = "결제 완료 전 취소 (환불 금액 없음)"
GATEWAY_FAIL_PREFIX = {
    GatewayUnreachable: "결제 서비스 연결 실패",
    GatewayRejected: "결제 요청 거절",
}


@dataclass(frozen=True)
class EnrollmentResult:
    enrollment: Enrollment
    payment: Optional[Payment] = None
    bill_url: str = ""

    @property
    def is_free(self):
        return self.payment is None


@dataclass(frozen=True)
class CallbackResult:
    payment: Payment
    outcome: CallbackOutcome
    is_duplicate: bool = False

    @property
    def status(self):
        return self.payment.status


@dataclass(frozen=True)
class CancelResult:
    enrollment: Enrollment
    payment: Optional[Payment]
    refund: RefundQuote


@dataclass(frozen=True)
class CancelPreview:
    enrollment_id: int
    can_cancel: bool
    is_free: bool
    original_amount: int
    refund_amount: int
    refund_rate: Fraction
    refund_reason: str
    schedule_start: object
    schedule_end: object


@dataclass(frozen=True)
class ReconcileResult:
    payment_id: int
    previous_status: str
    status: str
    approval_state: str = ""
    error: str = ""

    @property
    def changed(self):
        return self.previous_status != self.status


# -----------------------------------------------------------------------------------------------------------------------
# 내부 헬퍼
# -----------------------------------------------------------------------------------------------------------------------


def _cancel_enrollment_row(enrollment, now):
    enrollment.transition_to(EnrollmentStatus.CANCELLED)
    enrollment.cancelled_at = now
    enrollment.save(update_fields=["status", "cancelled_at", "updated_at"])


def _supersede(enrollment, now):
    """진행중인 이전 신청과 결제를 취소"""
    if enrollment.payment_id:
        payment = Payment.objects.select_for_update().get(pk=enrollment.payment_id)
        if payment.can_transition_to(PaymentStatus.CANCELLED):
            payment.transition_to(PaymentStatus.CANCELLED)
            payment.fail_message = "새로운 결제 요청으로 대체됨"
            payment.save(update_fields=["status", "fail_message", "updated_at"])

    _cancel_enrollment_row(enrollment, now)
    logger.info("이전 수강 신청 대체: enrollment=%s payment=%s", enrollment.pk, enrollment.payment_id)


def _schedule_confirmed_notification(enrollment, amount):
    transaction.on_commit(
        partial(
            notify_enrollment_confirmed,
            user=enrollment.user,
            course=enrollment.course,
            schedule=enrollment.schedule,
            amount=amount,
            enrollment_id=enrollment.pk,
        )
    )


def _apply_outcome(payment, enrollment, outcome, approval, message, now):
    """게이트웨이 결과를 결제/수강 신청에 반영 (콜백과 상태 조회 공통)

    payment는 잠금을 잡은 상태로, 아직 종료 상태가 아니어야 한다.
    """
    if outcome is CallbackOutcome.SUCCESS:
        payment.transition_to(PaymentStatus.CONFIRMED)
        payment.apply_approval(approval, paid_at=now)
        payment.save()

        if enrollment is not None and enrollment.can_transition_to(EnrollmentStatus.CONFIRMED):
            enrollment.transition_to(EnrollmentStatus.CONFIRMED)
            enrollment.save(update_fields=["status", "updated_at"])
            _schedule_confirmed_notification(enrollment, payment.amount)

        logger.info("결제 완료: bill_id=%s amount=%s", payment.bill_id, payment.amount)

    elif outcome in (CallbackOutcome.FAILURE, CallbackOutcome.CANCELLED):
        status = PaymentStatus.FAILED if outcome is CallbackOutcome.FAILURE else PaymentStatus.CANCELLED
        payment.transition_to(status)
        payment.approval_state = approval.state
        payment.fail_message = (message or "")[:500]
        payment.save()

        if enrollment is not None and enrollment.can_transition_to(EnrollmentStatus.CANCELLED):
            _cancel_enrollment_row(enrollment, now)

        logger.info("결제 %s: bill_id=%s msg=%s", status, payment.bill_id, message)

    else:
        payment.approval_state = approval.state
        payment.save(update_fields=["approval_state", "updated_at"])
        logger.warning("알 수 없는 결제 승인 상태: bill_id=%s appr_state=%s", payment.bill_id, approval.state)


def _lock_slot(user_id, course_id, schedule_id):
    """(회원, 강의, 기수) 잠금. 모든 변경은 슬롯 -> 수강 신청 -> 결제 순서로 잠근다."""
    slot, _ = EnrollmentSlot.objects.get_or_create(user_id=user_id, course_id=course_id, schedule_id=schedule_id)
    return EnrollmentSlot.objects.select_for_update().get(pk=slot.pk)


def _lock_rows_for_payment(payment_id):
    """결제에 연결된 슬롯, 수강 신청, 결제 순으로 잠근다.

    Returns:
        tuple: (잠긴 Enrollment 또는 None, 잠긴 Payment)
    """
    enrollment = Enrollment.objects.filter(payment_id=payment_id).first()
    if enrollment is not None:
        _lock_slot(enrollment.user_id, enrollment.course_id, enrollment.schedule_id)
        enrollment = Enrollment.objects.select_for_update().get(pk=enrollment.pk)

    payment = Payment.objects.select_for_update().get(pk=payment_id)
    return enrollment, payment


# -----------------------------------------------------------------------------------------------------------------------
# 수강 신청
# -----------------------------------------------------------------------------------------------------------------------


def _open_attempt(user, course, schedule, contact, now):
    """1단계: 잠금 후 이전 신청 대체 및 새 신청 생성"""
    with transaction.atomic():
        _lock_slot(user.pk, course.pk, schedule.pk)

        # 잠금 이후의 최신 상태로 다시 확인
        schedule = CourseSchedule.objects.get(pk=schedule.pk)
        course = Course.objects.get(pk=course.pk)
        if schedule.course_id != course.pk:
            raise ServiceError("강의와 일정 정보가 일치하지 않습니다.")
        ensure_purchasable(schedule)

        phone = "" if course.is_free else normalize_phone_number(contact.phone)

        triple = Enrollment.objects.filter(user=user, course=course, schedule=schedule)
        if triple.filter(status=EnrollmentStatus.CONFIRMED).exists():
            raise AlreadyEnrolled()

        for previous in triple.select_for_update().filter(status__in=OPEN_ENROLLMENT_STATUSES):
            _supersede(previous, now)

        if course.is_free:
            enrollment = Enrollment.objects.create(
                user=user, course=course, schedule=schedule, status=EnrollmentStatus.CONFIRMED
            )
            _schedule_confirmed_notification(enrollment, 0)
            logger.info("무료 강의 수강 확정: enrollment=%s user=%s", enrollment.pk, user.pk)
            return enrollment, None, course

        payment = Payment.objects.create(
            user=user,
            course=course,
            amount=course.price,
            payer_name=contact.name,
            payer_phone=phone,
            customer_memo=contact.memo,
            description=f"{course.title} {schedule.cohort}기 수강료",
        )
        payment.bill_id = make_bill_id(payment.pk)
        payment.save(update_fields=["bill_id", "updated_at"])

        enrollment = Enrollment.objects.create(user=user, course=course, schedule=schedule, payment=payment)
        logger.info("결제 대기 생성: enrollment=%s bill_id=%s", enrollment.pk, payment.bill_id)
        return enrollment, payment, course


def _record_gateway_result(enrollment, payment, bill_url, error, now):
    """3단계: 게이트웨이 전송 결과 기록

    Returns:
        tuple: (enrollment, payment, 호출자에게 전달할 예외 또는 None)
    """
    with transaction.atomic():
        _lock_slot(enrollment.user_id, enrollment.course_id, enrollment.schedule_id)
        enrollment = Enrollment.objects.select_for_update().get(pk=enrollment.pk)
        payment = Payment.objects.select_for_update().get(pk=payment.pk)

        if payment.status == PaymentStatus.CONFIRMED:
            # 콜백이 먼저 도착해 이미 결제 완료된 경우
            if bill_url:
                payment.bill_url = bill_url
                payment.save(update_fields=["bill_url", "updated_at"])
            return enrollment, payment, None

        if payment.status not in OPEN_PAYMENT_STATUSES:
            return enrollment, payment, AlreadyTerminal("새로운 결제 요청으로 대체되었거나 이미 종료된 결제입니다.")

        if error is None:
            if payment.status == PaymentStatus.PENDING:
                payment.transition_to(PaymentStatus.PROCESSING)
            payment.bill_url = bill_url
            payment.save(update_fields=["status", "bill_url", "updated_at"])
            logger.info("결제 요청 접수: bill_id=%s", payment.bill_id)
            return enrollment, payment, None

        prefix = GATEWAY_FAIL_PREFIX.get(type(error), "결제 요청 실패")
        payment.transition_to(PaymentStatus.FAILED)
        payment.fail_message = f"{prefix}: {error}"[:500]
        payment.save(update_fields=["status", "fail_message", "updated_at"])
        _cancel_enrollment_row(enrollment, now)
        logger.warning("결제 요청 실패: bill_id=%s %s", payment.bill_id, payment.fail_message)
        return enrollment, payment, error


def request_enrollment(user, course, schedule, contact, gateway=None, now=None):
    """수강 신청

    무료 강의는 즉시 확정하고, 유료 강의는 결제선생 청구서를 발송한다.

    Args:
        user (User): 신청하는 회원.
        course (Course): 신청할 강의.
        schedule (CourseSchedule): 신청할 기수.
        contact (ContactInfo): 결제자 이름/연락처.
        gateway (PaySsamClient, optional): 결제선생 클라이언트.
        now (datetime, optional): 기준 시각.

    Returns:
        EnrollmentResult: 생성된 신청/결제와 결제 페이지 URL.

    Raises:
        ScheduleClosed, AlreadyEnrolled, InvalidContactInfo,
        GatewayRejected, GatewayUnreachable, AlreadyTerminal
    """
    now = now or timezone.now()
    enrollment, payment, course = _open_attempt(user, course, schedule, contact, now)

    if payment is None:
        return EnrollmentResult(enrollment=enrollment)

    gateway = gateway or get_gateway_client()
    bill_url, error = "", None
    try:
        bill_url = gateway.submit(build_bill_request(payment, contact, course, now=now))
    except GatewayError as e:
        error = e

    enrollment, payment, error = _record_gateway_result(enrollment, payment, bill_url, error, now)
    if error is not None:
        raise error

    return EnrollmentResult(enrollment=enrollment, payment=payment, bill_url=payment.bill_url)


# -----------------------------------------------------------------------------------------------------------------------
# 결제선생 콜백
# -----------------------------------------------------------------------------------------------------------------------


def handle_gateway_callback(bill_id, outcome, approval, message="", raw=None, now=None):
    """결제선생 콜백 처리

    이미 종료 상태인 결제에 대한 콜백은 중복 수신으로 보고 아무것도 바꾸지 않는다.
    """
    now = now or timezone.now()

    payment_id = Payment.objects.filter(bill_id=bill_id).values_list("pk", flat=True).first()
    if payment_id is None:
        logger.error("콜백 결제 정보 없음: bill_id=%s", bill_id)
        raise PaymentNotFound()

    with transaction.atomic():
        enrollment, payment = _lock_rows_for_payment(payment_id)

        is_duplicate = payment.is_terminal
        PaymentCallbackLog.objects.create(
            payment=payment,
            bill_id=bill_id,
            source=PaymentCallbackLog.Source.CALLBACK,
            approval_state=approval.state,
            message=(message or "")[:500],
            raw_data=raw or {},
            is_duplicate=is_duplicate,
        )

        if is_duplicate:
            if outcome is CallbackOutcome.SUCCESS and payment.status != PaymentStatus.CONFIRMED:
                # 고객은 결제했지만 우리 쪽은 이미 취소/실패로 닫힌 결제
                logger.error(
                    "종료된 결제에 결제 완료 콜백 수신 (수동 환불 필요): bill_id=%s status=%s amount=%s",
                    bill_id,
                    payment.status,
                    payment.amount,
                )
            else:
                logger.warning("중복 콜백 수신: bill_id=%s status=%s", bill_id, payment.status)
            return CallbackResult(payment=payment, outcome=outcome, is_duplicate=True)

        logger.info("결제 콜백 수신: bill_id=%s appr_state=%s", bill_id, approval.state)
        _apply_outcome(payment, enrollment, outcome, approval, message, now)
        return CallbackResult(payment=payment, outcome=outcome)


# -----------------------------------------------------------------------------------------------------------------------
# 수강 취소
# -----------------------------------------------------------------------------------------------------------------------


def _get_enrollment_for(enrollment_id, actor):
    enrollment = Enrollment.objects.select_related("course", "schedule", "user").filter(pk=enrollment_id).first()
    if enrollment is None:
        raise EnrollmentNotFound()
    if not is_owner_or_staff(actor, enrollment):
        raise PermissionDenied("본인의 수강만 취소할 수 있습니다.")
    return enrollment


def _terminal_reason(enrollment):
    if enrollment.status == EnrollmentStatus.CANCELLED:
        return "이미 취소된 수강입니다."
    if enrollment.status == EnrollmentStatus.COMPLETED:
        return "이미 완료된 수강은 취소할 수 없습니다."
    return None


def _quote_for(enrollment, payment, now):
    if payment is None:
        return compute_refund(0, enrollment.schedule.start_date, enrollment.schedule.end_date, now)
    if payment.status == PaymentStatus.CONFIRMED:
        return compute_refund(payment.amount, enrollment.schedule.start_date, enrollment.schedule.end_date, now)
    return RefundQuote(Fraction(0), 0, UNPAID_CANCEL_REASON)


def _as_decimal(rate):
    return (Decimal(rate.numerator) / Decimal(rate.denominator)).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)


def _request_gateway_refund(payment_id, bill_id, amount, gateway=None):
    """커밋 이후 결제선생 환불 요청. 실패해도 취소는 되돌리지 않고 기록만 남긴다."""
    gateway = gateway or get_gateway_client()
    try:
        gateway.cancel_bill(bill_id, amount)
    except GatewayError as e:
        logger.exception("결제선생 환불 요청 실패: bill_id=%s amount=%s", bill_id, amount)
        Payment.objects.filter(pk=payment_id).update(refund_error=str(e)[:500], updated_at=timezone.now())
    else:
        logger.info("결제선생 환불 요청 완료: bill_id=%s amount=%s", bill_id, amount)


def cancel_enrollment(enrollment_id, actor, now=None, gateway=None):
    """수강 취소

    취소는 항상 허용되며 환불 금액은 수강 진행 정도에 따라 달라진다.
    실제 환불 요청과 취소 알림은 커밋 이후에 처리한다.

    Args:
        enrollment_id (int): 취소할 수강 신청 ID.
        actor (User): 취소를 요청한 회원 (본인 또는 관리자).
        now (datetime, optional): 환불 계산 기준 시각.
        gateway (PaySsamClient, optional): 결제선생 클라이언트.

    Returns:
        CancelResult: 취소된 신청/결제와 환불 내역.
    """
    now = now or timezone.now()

    enrollment = _get_enrollment_for(enrollment_id, actor)

    with transaction.atomic():
        _lock_slot(enrollment.user_id, enrollment.course_id, enrollment.schedule_id)
        enrollment = (
            Enrollment.objects.select_related("course", "schedule", "user")
            .select_for_update(of=("self",))
            .get(pk=enrollment.pk)
        )
        reason = _terminal_reason(enrollment)
        if reason:
            raise AlreadyTerminal(reason)

        payment = None
        if enrollment.payment_id:
            payment = Payment.objects.select_for_update().get(pk=enrollment.payment_id)

        quote = _quote_for(enrollment, payment, now)

        if payment is not None:
            if payment.status in OPEN_PAYMENT_STATUSES:
                payment.transition_to(PaymentStatus.CANCELLED)
            elif payment.status == PaymentStatus.CONFIRMED and quote.is_refundable:
                payment.transition_to(PaymentStatus.REFUNDED)
                payment.refunded_at = now

            payment.refund_rate = _as_decimal(quote.rate)
            payment.refund_amount = quote.amount
            payment.refund_reason = quote.reason
            payment.save()

            if quote.is_refundable and payment.bill_id:
                transaction.on_commit(
                    partial(_request_gateway_refund, payment.pk, payment.bill_id, quote.amount, gateway)
                )

        _cancel_enrollment_row(enrollment, now)
        transaction.on_commit(
            partial(
                notify_enrollment_cancelled,
                user=enrollment.user,
                course=enrollment.course,
                schedule=enrollment.schedule,
                refund_amount=quote.amount,
                enrollment_id=enrollment.pk,
            )
        )
        logger.info(
            "수강 취소: enrollment=%s refund=%s (%s)", enrollment.pk, quote.amount, quote.reason
        )

    return CancelResult(enrollment=enrollment, payment=payment, refund=quote)


def preview_cancel(enrollment_id, actor, now=None):
    """수강 취소 시 환불 예상 금액 조회 (상태 변경 없음)"""
    now = now or timezone.now()
    enrollment = _get_enrollment_for(enrollment_id, actor)
    payment = enrollment.payment if enrollment.payment_id else None

    quote = _quote_for(enrollment, payment, now)
    reason = _terminal_reason(enrollment)

    return CancelPreview(
        enrollment_id=enrollment.pk,
        can_cancel=reason is None,
        is_free=payment is None,
        original_amount=payment.amount if payment else 0,
        refund_amount=quote.amount,
        refund_rate=quote.rate,
        refund_reason=reason or quote.reason,
        schedule_start=enrollment.schedule.start_date,
        schedule_end=enrollment.schedule.end_date,
    )


# -----------------------------------------------------------------------------------------------------------------------
# 결제 상태 조회 (콜백 누락 보정)
# -----------------------------------------------------------------------------------------------------------------------


def _reconcile(payment, gateway, now):
    previous_status = payment.status
    data = gateway.check_bill(payment.bill_id)
    outcome, approval = parse_check_result(data)

    with transaction.atomic():
        enrollment, payment = _lock_rows_for_payment(payment.pk)
        is_duplicate = payment.is_terminal
        PaymentCallbackLog.objects.create(
            payment=payment,
            bill_id=payment.bill_id,
            source=PaymentCallbackLog.Source.RECONCILE,
            approval_state=approval.state,
            raw_data=data,
            is_duplicate=is_duplicate,
        )

        if not is_duplicate:
            _apply_outcome(payment, enrollment, outcome, approval, "결제선생 상태 조회 결과", now)

    return ReconcileResult(
        payment_id=payment.pk,
        previous_status=previous_status,
        status=payment.status,
        approval_state=approval.state,
    )


def check_payment_status(payment_id, gateway=None, now=None):
    """결제 1건의 상태를 결제선생에 조회해 반영

    Raises:
        PaymentNotFound: 결제가 없는 경우.
        GatewayRejected, GatewayUnreachable: 조회 실패.
    """
    now = now or timezone.now()
    payment = Payment.objects.filter(pk=payment_id).first()
    if payment is None:
        raise PaymentNotFound()
    if not payment.bill_id:
        raise ServiceError("결제 ID가 없습니다.")

    return _reconcile(payment, gateway or get_gateway_client(), now)


def _fail_unsent(payment, error, now):
    """게이트웨이에 청구서가 없는 pending 결제를 실패 처리 (요청 도중 프로세스가 종료된 경우)"""
    with transaction.atomic():
        enrollment, payment = _lock_rows_for_payment(payment.pk)
        if payment.status != PaymentStatus.PENDING:
            return payment

        payment.transition_to(PaymentStatus.FAILED)
        payment.fail_message = f"결제 요청 결과 확인 불가: {error}"[:500]
        payment.save(update_fields=["status", "fail_message", "updated_at"])

        if enrollment is not None and enrollment.can_transition_to(EnrollmentStatus.CANCELLED):
            _cancel_enrollment_row(enrollment, now)
        return payment


def reconcile_stale_payments(older_than, gateway=None, now=None):
    """오래된 pending/processing 결제를 결제선생에 다시 조회해 상태를 맞춘다

    Args:
        older_than (timedelta): 생성 후 이 시간이 지난 결제만 조회.
        gateway (PaySsamClient, optional): 결제선생 클라이언트.
        now (datetime, optional): 기준 시각.

    Returns:
        list[ReconcileResult]: 결제별 조회 결과.
    """
    now = now or timezone.now()
    gateway = gateway or get_gateway_client()

    stale = Payment.objects.filter(
        status__in=OPEN_PAYMENT_STATUSES,
        created_at__lt=now - older_than,
        bill_id__isnull=False,
    ).order_by("created_at")

    results = []
    for payment in stale:
        try:
            results.append(_reconcile(payment, gateway, now))
        except GatewayRejected as e:
            logger.warning("결제 상태 조회 거절: bill_id=%s %s", payment.bill_id, e)
            updated = _fail_unsent(payment, e, now)
            results.append(ReconcileResult(payment.pk, payment.status, updated.status, error=str(e)))
        except GatewayUnreachable as e:
            logger.error("결제 상태 조회 실패: bill_id=%s %s", payment.bill_id, e)
            results.append(ReconcileResult(payment.pk, payment.status, payment.status, error=str(e)))

    logger.info("결제 상태 보정 완료: 대상 %s건, 변경 %s건", len(results), sum(r.changed for r in results))
    return results
