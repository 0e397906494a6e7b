from unittest import mock

import requests
from django.test import SimpleTestCase

from apps.payments.exceptions import GatewayRejected, GatewayUnreachable
from apps.payments.gateway import PaySsamClient, get_gateway_client
from apps.payments.signer import BillRequest, make_cancel_hash


def gateway_response(status_code=200, body=None):
    response = mock.Mock(status_code=status_code)
    response.json.return_value = body if body is not None else {}
    return response


class PaySsamClientTests(SimpleTestCase):
    def setUp(self):
        self.client = PaySsamClient("https://payssam.test/", "api-key", "MEMBER", "MERCHANT", timeout=30)
        self.bill = BillRequest(
            bill_id="00000000000001123456",
            product_name="파이썬 백엔드 입문",
            message="파이썬 백엔드 입문 수강료 결제 안내드립니다.",
            member_name="홍길동",
            phone="01023456789",
            price=300000,
            hash="abc",
            expire_date="2025-03-04",
            callback_url="https://example.com/api/payments/callback/",
        )

    @mock.patch("apps.payments.gateway.requests.post")
    def test_submit_returns_payment_url(self, mock_post):
        mock_post.return_value = gateway_response(body={"code": "0000", "payment_url": "https://pay/1"})

        self.assertEqual(self.client.submit(self.bill), "https://pay/1")

        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs["json"]
        self.assertEqual(url, "https://payssam.test/if/bill/send")
        self.assertEqual(mock_post.call_args.kwargs["timeout"], 30)
        self.assertEqual(payload["apikey"], "api-key")
        self.assertEqual(payload["member"], "MEMBER")
        self.assertEqual(payload["merchant"], "MERCHANT")
        self.assertEqual(payload["bill"]["bill_id"], "00000000000001123456")

    @mock.patch("apps.payments.gateway.requests.post")
    def test_submit_falls_back_to_short_url(self, mock_post):
        mock_post.return_value = gateway_response(body={"code": "0000", "shortURL": "https://s/1"})
        self.assertEqual(self.client.submit(self.bill), "https://s/1")

    @mock.patch("apps.payments.gateway.requests.post")
    def test_non_success_code_is_rejected(self, mock_post):
        mock_post.return_value = gateway_response(body={"code": "1001", "msg": "해시값이 일치하지 않습니다."})

        with self.assertRaises(GatewayRejected) as ctx:
            self.client.submit(self.bill)
        self.assertEqual(str(ctx.exception), "해시값이 일치하지 않습니다.")

    @mock.patch("apps.payments.gateway.requests.post")
    def test_client_error_is_rejected(self, mock_post):
        mock_post.return_value = gateway_response(status_code=400, body={"msg": "잘못된 요청"})

        with self.assertRaises(GatewayRejected):
            self.client.submit(self.bill)

    @mock.patch("apps.payments.gateway.requests.post")
    def test_timeout_is_unreachable(self, mock_post):
        mock_post.side_effect = requests.exceptions.Timeout()

        with self.assertRaises(GatewayUnreachable) as ctx:
            self.client.submit(self.bill)
        self.assertEqual(ctx.exception.status_code, 503)

    @mock.patch("apps.payments.gateway.requests.post")
    def test_connection_error_is_unreachable(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError()

        with self.assertRaises(GatewayUnreachable):
            self.client.submit(self.bill)

    @mock.patch("apps.payments.gateway.requests.post")
    def test_server_error_is_unreachable(self, mock_post):
        mock_post.return_value = gateway_response(status_code=502)

        with self.assertRaises(GatewayUnreachable):
            self.client.submit(self.bill)

    @mock.patch("apps.payments.gateway.requests.post")
    def test_check_bill_returns_approval_data(self, mock_post):
        mock_post.return_value = gateway_response(body={"code": "0000", "data": {"appr_state": "00"}})

        self.assertEqual(self.client.check_bill("00000000000001123456"), {"appr_state": "00"})
        self.assertEqual(mock_post.call_args.args[0], "https://payssam.test/if/bill/check")
        self.assertEqual(mock_post.call_args.kwargs["json"]["bill_id"], "00000000000001123456")

    @mock.patch("apps.payments.gateway.requests.post")
    def test_cancel_bill_signs_request(self, mock_post):
        mock_post.return_value = gateway_response(body={"code": "0000"})

        self.client.cancel_bill("00000000000001123456", 150000)

        payload = mock_post.call_args.kwargs["json"]
        self.assertEqual(mock_post.call_args.args[0], "https://payssam.test/if/bill/cancel")
        self.assertEqual(payload["price"], 150000)
        self.assertEqual(payload["hash"], make_cancel_hash("00000000000001123456", 150000))

    def test_client_from_settings(self):
        client = get_gateway_client()
        self.assertEqual(client.base_url, "https://payssam.test")
        self.assertEqual(client.api_key, "test-api-key")
        self.assertEqual(client.timeout, 30)
