from django.test import TestCase

from apps.courses.exceptions import ScheduleClosed
from apps.courses.gate import can_purchase, ensure_purchasable
from apps.courses.models import ScheduleStatus
from apps.registrations.tests.factories import create_course, create_schedule


class ScheduleGateTests(TestCase):
    def setUp(self):
        self.course = create_course()

    def test_scheduled_is_purchasable(self):
        schedule = create_schedule(self.course)
        self.assertEqual(can_purchase(schedule), (True, None))
        ensure_purchasable(schedule)

    def test_closed_statuses_are_rejected_with_reason(self):
        expected = {
            ScheduleStatus.ONGOING: "이미 진행중인 강의는 수강신청이 마감되었습니다.",
            ScheduleStatus.COMPLETED: "이미 종료된 강의입니다.",
            ScheduleStatus.CANCELLED: "취소된 강의입니다.",
        }
        for schedule_status, reason in expected.items():
            with self.subTest(status=schedule_status):
                schedule = create_schedule(self.course, status=schedule_status)
                self.assertEqual(can_purchase(schedule), (False, reason))

                with self.assertRaises(ScheduleClosed) as ctx:
                    ensure_purchasable(schedule)
                self.assertEqual(str(ctx.exception), reason)
                self.assertEqual(ctx.exception.detail, {"error": reason})


class CourseScheduleStatusTests(TestCase):
    def setUp(self):
        self.schedule = create_schedule(create_course())

    def test_status_moves_forward(self):
        self.schedule.status = ScheduleStatus.ONGOING
        self.schedule.save()
        self.schedule.status = ScheduleStatus.COMPLETED
        self.schedule.save()

        self.schedule.refresh_from_db()
        self.assertEqual(self.schedule.status, ScheduleStatus.COMPLETED)

    def test_backward_move_is_refused(self):
        self.schedule.status = ScheduleStatus.COMPLETED
        with self.assertRaises(ValueError):
            self.schedule.save()

        self.schedule.status = ScheduleStatus.ONGOING
        self.schedule.save()
        self.schedule.status = ScheduleStatus.SCHEDULED
        with self.assertRaises(ValueError):
            self.schedule.save()
