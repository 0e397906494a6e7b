from datetime import datetime, timedelta, timezone

import redis
from django.conf import settings

KST = timezone(timedelta(hours=9))


def parse_gateway_datetime(value):
    """결제선생 날짜 형식(YYYYMMDDHHmmss, KST)을 aware datetime으로 변환

    :param value: 14자리 날짜 문자열
    :return: datetime 또는 None (형식이 맞지 않으면)
    """
    if not value or len(value) != 14:
        return None

    try:
        return datetime.strptime(value, "%Y%m%d%H%M%S").replace(tzinfo=KST)
    except ValueError:
        return None


def format_won(amount):
    """금액을 천 단위 구분 기호가 들어간 원화 문자열로 변환"""
    return f"{amount:,}원"


redis_client = redis.StrictRedis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    db=0,
    decode_responses=True,  # 문자열 반환을 위해 decode_responses=True 설정
)
