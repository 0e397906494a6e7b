from django.db import models

from apps.common.exceptions import InvalidStatusTransition


class BaseModel(models.Model):
    """생성/수정 시각을 공통으로 가지는 추상 모델."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class StatusTransitionMixin:
    """허용된 상태 전이만 수행하도록 하는 믹스인.

    TRANSITIONS는 ``{현재 상태: {다음 상태, ...}}`` 형태의 문자열 딕셔너리이다.
    """

    TRANSITIONS = {}

    def can_transition_to(self, status):
        return str(status) in self.TRANSITIONS.get(str(self.status), set())

    def transition_to(self, status):
        if not self.can_transition_to(status):
            raise InvalidStatusTransition(
                f"{self.__class__.__name__}({self.pk}) 상태를 {self.status}에서 {status}(으)로 변경할 수 없습니다."
            )
        self.status = str(status)
