"""
결제 상태 보정 커맨드

콜백을 받지 못해 pending/processing 상태로 남아 있는 결제를 결제선생에 다시 조회해
상태를 맞춘다. cron 등으로 주기적으로 실행한다.

Usage:
    python manage.py reconcile_payments
    python manage.py reconcile_payments --minutes 60
"""

from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand

from apps.registrations.ledger import reconcile_stale_payments


class Command(BaseCommand):
    help = "오래된 결제 대기/진행중 건을 결제선생 상태 조회 결과로 보정합니다."

    def add_arguments(self, parser):
        parser.add_argument(
            "--minutes",
            type=int,
            default=settings.PAYMENT_RECONCILE_AFTER_MINUTES,
            help="생성 후 이 시간(분)이 지난 결제만 조회",
        )

    def handle(self, *args, **options):
        results = reconcile_stale_payments(older_than=timedelta(minutes=options["minutes"]))

        for result in results:
            if result.error:
                self.stdout.write(self.style.WARNING(f"- 결제 {result.payment_id}: 조회 실패 ({result.error})"))
            elif result.changed:
                self.stdout.write(f"- 결제 {result.payment_id}: {result.previous_status} -> {result.status}")

        changed = sum(result.changed for result in results)
        self.stdout.write(self.style.SUCCESS(f"결제 상태 보정 완료: 대상 {len(results)}건, 변경 {changed}건"))
