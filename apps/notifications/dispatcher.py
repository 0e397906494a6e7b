import json
import logging

import redis
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone

from apps.common.utils import format_won, redis_client

logger = logging.getLogger(__name__)


class EventType:
    ENROLLMENT_CONFIRMED = "enrollment_confirmed"
    ENROLLMENT_CANCELLED = "enrollment_cancelled"


def _base_event(event_type, user, course, schedule, enrollment_id):
    return {
        "type": event_type,
        "enrollment_id": enrollment_id,
        "user_id": user.pk,
        "email": user.email,
        "user_name": user.display_name,
        "course_title": course.title,
        "cohort": schedule.cohort,
        "start_date": timezone.localtime(schedule.start_date).strftime("%Y-%m-%d"),
        "end_date": timezone.localtime(schedule.end_date).strftime("%Y-%m-%d"),
    }


def enqueue(event):
    """알림 이벤트를 Redis 큐에 적재. 실패해도 예외를 전파하지 않는다."""
    try:
        redis_client.lpush(settings.NOTIFICATION_QUEUE_KEY, json.dumps(event, ensure_ascii=False))
    except redis.RedisError:
        logger.exception("알림 큐 적재 실패: type=%s enrollment=%s", event.get("type"), event.get("enrollment_id"))
        return False

    logger.info("알림 큐 적재: type=%s enrollment=%s", event["type"], event["enrollment_id"])
    return True


def notify_enrollment_confirmed(user, course, schedule, amount, enrollment_id):
    event = _base_event(EventType.ENROLLMENT_CONFIRMED, user, course, schedule, enrollment_id)
    event["amount"] = amount
    return enqueue(event)


def notify_enrollment_cancelled(user, course, schedule, refund_amount, enrollment_id):
    event = _base_event(EventType.ENROLLMENT_CANCELLED, user, course, schedule, enrollment_id)
    event["refund_amount"] = refund_amount
    return enqueue(event)


# -----------------------------------------------------------------------------------------------------------------------
# 발송 (run_notification_worker)
# -----------------------------------------------------------------------------------------------------------------------


def build_message(event):
    """이벤트를 (제목, 본문)으로 변환"""
    course = f"{event['course_title']} {event['cohort']}기"
    period = f"{event['start_date']} ~ {event['end_date']}"

    if event["type"] == EventType.ENROLLMENT_CONFIRMED:
        amount = event.get("amount") or 0
        subject = f"[수강신청 완료] {course}"
        lines = [
            f"{event['user_name']}님, {course} 수강신청이 완료되었습니다.",
            f"수업 기간: {period}",
            f"결제 금액: {format_won(amount)}" if amount else "결제 금액: 무료",
        ]
    elif event["type"] == EventType.ENROLLMENT_CANCELLED:
        refund_amount = event.get("refund_amount") or 0
        subject = f"[수강 취소 완료] {course}"
        lines = [
            f"{event['user_name']}님, {course} 수강이 취소되었습니다.",
            f"환불 금액: {format_won(refund_amount)}" if refund_amount else "환불 금액이 없습니다.",
        ]
    else:
        raise ValueError(f"알 수 없는 알림 유형입니다: {event['type']}")

    return subject, "\n".join(lines)


def deliver(event):
    """알림 1건 이메일 발송"""
    subject, message = build_message(event)
    send_mail(
        subject=subject,
        message=message,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[event["email"]],
        fail_silently=False,
    )
    logger.info("알림 발송 완료: type=%s enrollment=%s", event["type"], event["enrollment_id"])


def pop_event(timeout=5):
    """큐에서 이벤트 1건을 꺼낸다. 대기 시간 내에 없으면 None"""
    item = redis_client.brpop(settings.NOTIFICATION_QUEUE_KEY, timeout=timeout)
    if item is None:
        return None

    _, raw = item
    return json.loads(raw)
