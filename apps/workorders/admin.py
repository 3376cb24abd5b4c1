from django.contrib import admin
from .models import Counter, Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["work_order_id", "space_name", "building", "technician", "status", "priority", "created_at"]
    list_filter = ["status", "priority", "permit_required"]
    search_fields = ["work_order_id", "unique_id", "space_name", "building", "technician"]
    readonly_fields = ["internal_id", "unique_id", "work_order_id", "workflow_history", "created_at", "updated_at"]


@admin.register(Counter)
class CounterAdmin(admin.ModelAdmin):
    list_display = ["key", "seq", "updated_at"]
    readonly_fields = ["updated_at"]
