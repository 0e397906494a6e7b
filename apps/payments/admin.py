from django.contrib import admin

from apps.common.admin import BaseModelAdmin, ReadOnlyModelAdmin

from .models import Payment, PaymentCallbackLog


@admin.register(Payment)
class PaymentAdmin(BaseModelAdmin):
    list_display = ("id", "bill_id", "user", "course", "amount", "status", "paid_at", "refund_amount", "created_at")
    list_filter = ("status",)
    search_fields = ("bill_id", "user__email", "payer_name", "payer_phone")
    readonly_fields = (
        "user",
        "course",
        "amount",
        "status",
        "bill_id",
        "bill_url",
        "approval_state",
        "approved_at",
        "approval_pay_type",
        "approval_issuer",
        "approval_issuer_number",
        "approval_number",
        "paid_at",
        "refund_rate",
        "refund_amount",
        "refund_reason",
        "refunded_at",
        "refund_error",
        "created_at",
        "updated_at",
    )


@admin.register(PaymentCallbackLog)
class PaymentCallbackLogAdmin(ReadOnlyModelAdmin):
    list_display = ("id", "bill_id", "source", "approval_state", "is_duplicate", "created_at")
    list_filter = ("source", "is_duplicate")
    search_fields = ("bill_id",)
