from datetime import timedelta
from unittest import mock

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from apps.courses.models import ScheduleStatus
from apps.payments.callbacks import ApprovalInfo, CallbackOutcome
from apps.payments.exceptions import GatewayUnreachable
from apps.payments.models import Payment, PaymentStatus
from apps.registrations.ledger import handle_gateway_callback
from apps.registrations.models import Enrollment, EnrollmentStatus

from .factories import BILL_URL, create_course, create_schedule, create_user, fake_gateway


@mock.patch("apps.registrations.ledger.notify_enrollment_cancelled")
@mock.patch("apps.registrations.ledger.notify_enrollment_confirmed")
class EnrollmentRegistrationViewTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = create_user()
        self.client.force_authenticate(user=self.user)
        self.course = create_course(price=300000)
        self.schedule = create_schedule(self.course)
        self.url = reverse("enrollment-create")
        self.gateway = fake_gateway()

        patcher = mock.patch("apps.registrations.ledger.get_gateway_client", return_value=self.gateway)
        patcher.start()
        self.addCleanup(patcher.stop)

    def payload(self, **kwargs):
        data = {"course_id": self.course.id, "schedule_id": self.schedule.id, "payer_phone": "010-2345-6789"}
        data.update(kwargs)
        return data

    def test_paid_enrollment_returns_payment_url(self, notify_confirmed, notify_cancelled):
        response = self.client.post(self.url, self.payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data["is_free"])
        self.assertEqual(response.data["payment_url"], BILL_URL)
        self.assertEqual(len(response.data["bill_id"]), 20)
        self.assertEqual(response.data["enrollment"]["status"], EnrollmentStatus.PENDING)
        self.assertEqual(response.data["enrollment"]["payment_status"], PaymentStatus.PROCESSING)
        self.assertEqual(response.data["enrollment"]["amount"], 300000)

    def test_payer_name_defaults_to_user_name(self, notify_confirmed, notify_cancelled):
        self.client.post(self.url, self.payload(), format="json")

        payment = Payment.objects.get()
        self.assertEqual(payment.payer_name, self.user.name)
        self.assertEqual(payment.payer_phone, "01023456789")

    def test_free_enrollment(self, notify_confirmed, notify_cancelled):
        course = create_course(price=0, title="무료 특강")
        schedule = create_schedule(course)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                self.url, {"course_id": course.id, "schedule_id": schedule.id}, format="json"
            )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["is_free"])
        self.assertNotIn("payment_url", response.data)
        self.assertEqual(response.data["enrollment"]["status"], EnrollmentStatus.CONFIRMED)
        notify_confirmed.assert_called_once()

    def test_schedule_of_other_course(self, notify_confirmed, notify_cancelled):
        other = create_schedule(create_course())

        response = self.client.post(self.url, self.payload(schedule_id=other.id), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("schedule_id", response.data)

    def test_invalid_phone(self, notify_confirmed, notify_cancelled):
        response = self.client.post(self.url, self.payload(payer_phone="02-123-4567"), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("payer_phone", response.data)
        self.assertFalse(Enrollment.objects.exists())

    def test_closed_schedule(self, notify_confirmed, notify_cancelled):
        self.schedule.status = ScheduleStatus.ONGOING
        self.schedule.save()

        response = self.client.post(self.url, self.payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "이미 진행중인 강의는 수강신청이 마감되었습니다.")

    def test_already_enrolled(self, notify_confirmed, notify_cancelled):
        response = self.client.post(self.url, self.payload(), format="json")
        handle_gateway_callback(response.data["bill_id"], CallbackOutcome.SUCCESS, ApprovalInfo(state="F"))

        response = self.client.post(self.url, self.payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "이미 수강 신청이 완료된 강의입니다.")

    def test_gateway_unreachable(self, notify_confirmed, notify_cancelled):
        self.gateway.submit.side_effect = GatewayUnreachable()

        response = self.client.post(self.url, self.payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertIn("error", response.data)
        self.assertEqual(Payment.objects.get().status, PaymentStatus.FAILED)

    def test_requires_login(self, notify_confirmed, notify_cancelled):
        client = APIClient()

        response = client.post(self.url, self.payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


@mock.patch("apps.registrations.ledger.notify_enrollment_cancelled")
@mock.patch("apps.registrations.ledger.notify_enrollment_confirmed")
class EnrollmentCancelViewTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = create_user()
        self.client.force_authenticate(user=self.user)
        self.course = create_course(price=300000)
        self.schedule = create_schedule(self.course, start_in=timedelta(days=5))
        self.gateway = fake_gateway()

        patcher = mock.patch("apps.registrations.ledger.get_gateway_client", return_value=self.gateway)
        patcher.start()
        self.addCleanup(patcher.stop)

        response = self.client.post(
            reverse("enrollment-create"),
            {"course_id": self.course.id, "schedule_id": self.schedule.id},
            format="json",
        )
        self.enrollment_id = response.data["enrollment"]["id"]
        handle_gateway_callback(response.data["bill_id"], CallbackOutcome.SUCCESS, ApprovalInfo(state="F"))
        self.url = reverse("enrollment-cancel", kwargs={"enrollment_id": self.enrollment_id})

    def test_preview(self, notify_confirmed, notify_cancelled):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["can_cancel"])
        self.assertEqual(response.data["refund_amount"], 300000)
        self.assertEqual(response.data["refund_rate"], 1.0)
        self.assertEqual(Enrollment.objects.get(pk=self.enrollment_id).status, EnrollmentStatus.CONFIRMED)

    def test_cancel(self, notify_confirmed, notify_cancelled):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["detail"], "수강이 취소되었습니다.")
        self.assertEqual(response.data["status"], EnrollmentStatus.CANCELLED)
        self.assertEqual(response.data["payment_status"], PaymentStatus.REFUNDED)
        self.assertEqual(response.data["refund_amount"], 300000)
        self.gateway.cancel_bill.assert_called_once()
        notify_cancelled.assert_called_once()

    def test_cancel_twice(self, notify_confirmed, notify_cancelled):
        self.client.post(self.url)

        response = self.client.post(self.url)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"], "이미 취소된 수강입니다.")

    def test_other_user_cannot_cancel(self, notify_confirmed, notify_cancelled):
        client = APIClient()
        client.force_authenticate(user=create_user())

        response = client.post(self.url)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Enrollment.objects.get(pk=self.enrollment_id).status, EnrollmentStatus.CONFIRMED)

    def test_missing_enrollment(self, notify_confirmed, notify_cancelled):
        response = self.client.post(reverse("enrollment-cancel", kwargs={"enrollment_id": 9999}))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["error"], "수강 신청 정보를 찾을 수 없습니다.")

    def test_my_enrollments(self, notify_confirmed, notify_cancelled):
        response = self.client.get(reverse("enrollment-my"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["payment_status"], PaymentStatus.CONFIRMED)
        self.assertEqual(response.data[0]["course_title"], self.course.title)
