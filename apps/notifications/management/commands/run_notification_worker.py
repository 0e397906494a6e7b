"""
알림 큐 소비 커맨드

수강신청 확정/취소 시 Redis 큐에 적재된 알림 이벤트를 꺼내 이메일로 발송한다.

Usage:
    python manage.py run_notification_worker
    python manage.py run_notification_worker --once
    python manage.py run_notification_worker --retry-delay 10
"""

import json
import logging
import smtplib
import time

import redis
from django.core.management.base import BaseCommand

from apps.notifications.dispatcher import deliver, pop_event

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Redis 알림 큐를 소비해 수강신청 확정/취소 알림을 발송합니다."

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="큐에 쌓인 알림만 처리하고 종료",
        )
        parser.add_argument(
            "--timeout",
            type=int,
            default=5,
            help="큐 대기 시간 (초)",
        )
        parser.add_argument(
            "--retry-delay",
            type=int,
            default=5,
            help="Redis 연결 실패 후 재시도까지 대기 시간 (초)",
        )

    def handle(self, *args, **options):
        self.sent = self.failed = 0

        self.stdout.write("알림 워커 시작")
        try:
            self.consume(options["once"], options["timeout"], options["retry_delay"])
        except KeyboardInterrupt:
            self.stdout.write("알림 워커 종료")

        self.stdout.write(self.style.SUCCESS(f"알림 발송 {self.sent}건, 실패 {self.failed}건"))

    def consume(self, once, timeout, retry_delay):
        while True:
            try:
                event = pop_event(timeout=timeout)
            except redis.RedisError:
                logger.exception("알림 큐 조회 실패")
                if once:
                    return
                time.sleep(retry_delay)
                continue
            except json.JSONDecodeError:
                logger.exception("알림 이벤트 형식 오류")
                self.failed += 1
                continue

            if event is None:
                if once:
                    return
                continue

            try:
                deliver(event)
                self.sent += 1
            except (smtplib.SMTPException, OSError, KeyError, ValueError):
                logger.exception("알림 발송 실패: %s", event)
                self.failed += 1
