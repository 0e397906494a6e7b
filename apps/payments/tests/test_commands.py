from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import TestCase

from apps.payments.exceptions import GatewayUnreachable
from apps.payments.models import Payment, PaymentStatus
from apps.registrations.ledger import request_enrollment
from apps.registrations.tests.factories import CONTACT, create_course, create_schedule, create_user, fake_gateway


@mock.patch("apps.registrations.ledger.notify_enrollment_confirmed")
class ReconcilePaymentsCommandTests(TestCase):
    def setUp(self):
        course = create_course(price=300000)
        self.result = request_enrollment(
            create_user(), course, create_schedule(course), CONTACT, gateway=fake_gateway()
        )
        self.gateway = fake_gateway()

        patcher = mock.patch("apps.registrations.ledger.get_gateway_client", return_value=self.gateway)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_reconciles_stale_payments(self, notify_confirmed):
        self.gateway.check_bill.return_value = {"appr_state": "00"}
        out = StringIO()

        call_command("reconcile_payments", "--minutes", "0", stdout=out)

        self.assertEqual(Payment.objects.get(pk=self.result.payment.pk).status, PaymentStatus.CONFIRMED)
        self.assertIn("processing -> confirmed", out.getvalue())
        self.assertIn("대상 1건, 변경 1건", out.getvalue())

    def test_reports_gateway_errors(self, notify_confirmed):
        self.gateway.check_bill.side_effect = GatewayUnreachable()
        out = StringIO()

        call_command("reconcile_payments", "--minutes", "0", stdout=out)

        self.assertIn("조회 실패", out.getvalue())
        self.assertEqual(Payment.objects.get(pk=self.result.payment.pk).status, PaymentStatus.PROCESSING)

    def test_recent_payments_are_left_alone(self, notify_confirmed):
        out = StringIO()

        call_command("reconcile_payments", stdout=out)

        self.gateway.check_bill.assert_not_called()
        self.assertIn("대상 0건", out.getvalue())
