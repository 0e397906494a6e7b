"""결제선생 청구서 요청 생성 및 서명

- 청구서 ID: 결제 ID 14자리 + HMAC 기반 6자리 = 20자리 (같은 결제는 항상 같은 ID)
- 해시: SHA-256("{bill_id},{phone},{price}"), 공유 비밀키가 설정되면 HMAC-SHA256
- 휴대폰 번호: 010으로 시작하는 11자리만 허용
"""

import hashlib
import hmac
import re
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from apps.payments.exceptions import InvalidContactInfo

BILL_ID_LENGTH = 20
BILL_ID_PREFIX_DIGITS = 14
BILL_ID_SUFFIX_DIGITS = 6

PHONE_PATTERN = re.compile(r"^010\d{8}$")
INVALID_PHONE_PREFIX = re.compile(r"^010[01]")


@dataclass(frozen=True)
class ContactInfo:
    name: str
    phone: str
    memo: str = ""


@dataclass(frozen=True)
class BillRequest:
    bill_id: str
    product_name: str
    message: str
    member_name: str
    phone: str
    price: int
    hash: str
    expire_date: str
    callback_url: str

    def to_payload(self):
        """결제선생 /if/bill/send 의 bill 객체"""
        return {
            "bill_id": self.bill_id,
            "product_nm": self.product_name,
            "message": self.message,
            "member_nm": self.member_name,
            "phone": self.phone,
            "price": self.price,
            "hash": self.hash,
            "expire_dt": self.expire_date,
            "callbackURL": self.callback_url,
        }


def normalize_phone_number(raw):
    """하이픈/공백을 제거하고 휴대폰 번호 형식을 검증

    Args:
        raw (str): 입력된 휴대폰 번호.

    Returns:
        str: 숫자만 남긴 11자리 번호.

    Raises:
        InvalidContactInfo: 형식이 올바르지 않은 경우.
    """
    phone = re.sub(r"[-\s]", "", raw or "")

    if not PHONE_PATTERN.match(phone):
        raise InvalidContactInfo("올바른 전화번호 형식이 아닙니다. (010으로 시작하는 11자리)")
    if INVALID_PHONE_PREFIX.match(phone):
        raise InvalidContactInfo("올바르지 않은 휴대폰 번호입니다.")

    return phone


def _secret_key():
    return (settings.PAYSSAM_HASH_SECRET or settings.SECRET_KEY).encode()


def make_bill_id(payment_id):
    """결제 ID로부터 20자리 청구서 ID 생성"""
    padded = str(payment_id).zfill(BILL_ID_PREFIX_DIGITS)
    if len(padded) > BILL_ID_PREFIX_DIGITS:
        raise ValueError(f"결제 ID가 너무 큽니다: {payment_id}")

    digest = hmac.new(_secret_key(), padded.encode(), hashlib.sha256).hexdigest()
    suffix = str(int(digest, 16) % 10**BILL_ID_SUFFIX_DIGITS).zfill(BILL_ID_SUFFIX_DIGITS)
    return padded + suffix


def _digest(message):
    secret = settings.PAYSSAM_HASH_SECRET
    if secret:
        return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()
    return hashlib.sha256(message.encode()).hexdigest()


def make_bill_hash(bill_id, price, phone):
    return _digest(f"{bill_id},{phone},{price}")


def make_cancel_hash(bill_id, price):
    return _digest(f"{bill_id},{price}")


def bill_expire_date(now=None):
    now = timezone.localtime(now or timezone.now())
    return (now + timedelta(days=settings.PAYSSAM_BILL_EXPIRE_DAYS)).strftime("%Y-%m-%d")


def build_bill_request(payment, contact, course, now=None):
    """결제 1건에 대한 청구서 요청 생성

    Args:
        payment (Payment): bill_id가 할당된 결제.
        contact (ContactInfo): 결제자 이름/연락처.
        course (Course): 결제 대상 강의.
        now (datetime, optional): 만료일 계산 기준 시각.

    Returns:
        BillRequest: 서명이 포함된 청구서 요청.
    """
    phone = normalize_phone_number(contact.phone)
    bill_id = payment.bill_id or make_bill_id(payment.pk)

    return BillRequest(
        bill_id=bill_id,
        product_name=course.title,
        message=f"{course.title} 수강료 결제 안내드립니다.",
        member_name=contact.name,
        phone=phone,
        price=payment.amount,
        hash=make_bill_hash(bill_id, payment.amount, phone),
        expire_date=bill_expire_date(now),
        callback_url=settings.PAYSSAM_CALLBACK_URL,
    )
