from django.utils.decorators import method_decorator
from django_ratelimit.decorators import ratelimit
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import JSONParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.authentication.identity import Caller
from apps.core.permissions import IsAdminOrManager
from .serializers import (
    BulkImportSerializer,
    BulkStatusUpdateSerializer,
    DeleteAllSerializer,
    OrderQuerySerializer,
    OrderSerializer,
    OrderSummarySerializer,
    StatusUpdateSerializer,
)
from .services import OrderFilters, OrderService

BULK_RATE = "20/m"


def rate_limited_response():
    return Response(
        {"success": False, "message": f"Rate limit exceeded. Maximum {BULK_RATE.replace('/m', '')} bulk requests per minute."},
        status=status.HTTP_429_TOO_MANY_REQUESTS,
    )


class OrderViewSet(viewsets.ViewSet):
    """
    Work order endpoints

    Every operation is scoped to the caller:
    - admins and managers see all orders
    - technicians see orders whose technician name matches theirs
    - everyone else sees only the orders they created

    Orders can be addressed by internal UUID, unique id or work order id.
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser]
    lookup_field = "identifier"
    lookup_value_regex = "[^/]+"

    def get_caller(self) -> Caller:
        return Caller.from_user(self.request.user)

    def list(self, request):
        query = OrderQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        page = OrderService.list_orders(
            self.get_caller(),
            filters=OrderFilters(
                status=params.get("status"),
                priority=params.get("priority"),
                search=params.get("search"),
                date_from=params.get("date_from"),
                date_to=params.get("date_to"),
            ),
            page=params["page"],
            limit=params.get("limit"),
            sort_by=params["sort_by"],
            sort_order=params["sort_order"],
        )

        return Response(
            {
                "success": True,
                "data": {
                    "orders": OrderSerializer(page.items, many=True).data,
                    "pagination": {
                        "current_page": page.page,
                        "total_pages": page.total_pages,
                        "total_items": page.total_items,
                        "items_per_page": page.page_size,
                        "has_next_page": page.has_next,
                        "has_prev_page": page.has_previous,
                    },
                },
            }
        )

    def retrieve(self, request, identifier=None):
        order = OrderService.get_order(self.get_caller(), identifier)
        return Response({"success": True, "data": OrderSerializer(order).data})

    def create(self, request):
        order = OrderService.create_order(self.get_caller(), request.data)
        return Response(
            {"success": True, "message": "Work order created successfully", "data": OrderSerializer(order).data},
            status=status.HTTP_201_CREATED,
        )

    def partial_update(self, request, identifier=None):
        order = OrderService.update_order(self.get_caller(), identifier, request.data)
        return Response({"success": True, "message": "Work order updated successfully", "data": OrderSerializer(order).data})

    def update(self, request, identifier=None):
        # full replacement is not supported; PUT behaves like PATCH
        return self.partial_update(request, identifier=identifier)

    def destroy(self, request, identifier=None):
        OrderService.delete_order(self.get_caller(), identifier)
        return Response({"success": True, "message": "Work order deleted successfully"})

    @action(detail=True, methods=["patch", "put"], url_path="status")
    def update_status(self, request, identifier=None):
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = OrderService.update_status(
            self.get_caller(),
            identifier,
            serializer.validated_data["status"],
            serializer.validated_data.get("comments"),
        )
        return Response({"success": True, "message": "Status updated successfully", "data": OrderSerializer(order).data})

    @method_decorator(ratelimit(key="user", rate=BULK_RATE, method="POST", block=False))
    @action(detail=False, methods=["post"], url_path="bulk/status")
    def bulk_status(self, request):
        if getattr(request, "limited", False):
            return rate_limited_response()

        serializer = BulkStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OrderService.bulk_update_status(
            self.get_caller(),
            serializer.validated_data["order_ids"],
            serializer.validated_data["status"],
            serializer.validated_data.get("comments"),
        )
        return Response(
            {
                "success": True,
                "message": f"{result.updated} work orders updated successfully",
                "data": {"total_requested": result.requested, "updated": result.updated, "skipped": result.skipped},
            }
        )

    @method_decorator(ratelimit(key="user", rate=BULK_RATE, method="POST", block=False))
    @action(detail=False, methods=["post"], url_path="bulk/import", permission_classes=[IsAdminOrManager])
    def bulk_import(self, request):
        if getattr(request, "limited", False):
            return rate_limited_response()

        serializer = BulkImportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OrderService.bulk_import(self.get_caller(), serializer.validated_data["csv_data"])
        return Response(
            {
                "success": True,
                "message": (
                    f"Bulk import completed: {result.successful} orders imported successfully, {result.failed} failed"
                ),
                "data": {
                    "results": {
                        "total": result.total,
                        "successful": result.successful,
                        "failed": result.failed,
                        "errors": result.errors,
                    },
                    "imported_orders": OrderSummarySerializer(result.orders, many=True).data,
                },
            }
        )

    @action(detail=False, methods=["delete"], url_path="bulk/delete-all", permission_classes=[IsAdminOrManager])
    def delete_all(self, request):
        serializer = DeleteAllSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = OrderService.delete_all(self.get_caller(), serializer.validated_data["confirm_phrase"])
        message = (
            f"Successfully deleted all {result['deleted_count']} work orders."
            if result["total_before"]
            else "No work orders to delete."
        )
        return Response({"success": True, "message": message, "data": result})

    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        stats = OrderService.stats(self.get_caller())
        stats["recent_activity"] = OrderSummarySerializer(stats["recent_activity"], many=True).data
        return Response({"success": True, "data": stats})
