from django.contrib.auth.base_user import BaseUserManager
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django_softdelete.models import SoftDeleteManager, SoftDeleteModel

from apps.common.models import BaseModel


class UserManager(BaseUserManager, SoftDeleteManager):
    def create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("이메일 주소는 필수입니다.")
        if not password:
            raise ValueError("비밀번호는 필수입니다.")
        email = self.normalize_email(email)  # 이메일 정규화
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        return self.create_user(email, password, **extra_fields)


class User(BaseModel, AbstractBaseUser, PermissionsMixin, SoftDeleteModel):
    """수강생 및 관리자 계정.

    회원가입/로그인은 외부 인증 계층에서 처리하며, 수강신청/결제 코어는
    이 모델을 읽기만 한다. 탈퇴 시에도 수강/결제 이력이 남도록 소프트 삭제한다.
    """

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=30)
    nickname = models.CharField(max_length=20, unique=True)
    phone_number = models.CharField(max_length=20, blank=True, default="")
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    is_superuser = models.BooleanField(default=False)

    # 로그인 시 username이 아니라 email로 로그인하게 됨(식별자가 email)
    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["name", "nickname"]

    objects = UserManager()

    class Meta:
        db_table = "user"

    def __str__(self):
        return f"{self.name} <{self.email}>"

    @property
    def display_name(self):
        """알림 등에 사용할 호칭 (닉네임 우선)"""
        return self.nickname or self.name or "회원"
