"""Order API views.

Exposes ``OrderService`` over HTTP with a DRF ViewSet.  The service
returns ``Result`` values; a ``Failure`` is rendered through the shared
error format and a ``Success`` through the output DTOs.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, BasePermission, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.core.exception_handler import domain_error_response
from modules.core.principal import Principal
from modules.orders.dtos import (
    CreateOrderDTO,
    OrderListDTO,
    OrderOutputDTO,
    OrderSummaryDTO,
    StatusHistoryDTO,
)
from modules.orders.serializers import (
    CancelOrderSerializer,
    CreateOrderSerializer,
    OrderListQuerySerializer,
    UpdateOrderStatusSerializer,
)
from modules.orders.services import OrderService, build_order_service
from shared.domain.result import Failure, Result

IDEMPOTENCY_HEADER = "Idempotency-Key"


def _respond(
    result: Result, render: Callable[[Any], Any], success_status: int = 200
) -> Response:
    if isinstance(result, Failure):
        return domain_error_response(result.error)
    return Response(render(result.value), status=success_status)


def _order_body(order: Any) -> dict:
    return OrderOutputDTO.from_entity(order).model_dump(mode="json")


class OrderViewSet(ViewSet):
    """Checkout, order reads, status changes and cancellation.

    All ORM access goes through the service/repository layer.
    """

    lookup_field = "pk"

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._service: OrderService = build_order_service()

    def get_permissions(self) -> list[BasePermission]:
        if self.action == "create":
            return [AllowAny()]
        return [IsAuthenticated()]

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @extend_schema(
        request=CreateOrderSerializer,
        parameters=[
            OpenApiParameter(IDEMPOTENCY_HEADER, str, OpenApiParameter.HEADER),
        ],
    )
    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Anonymous callers check out as guests via ``guest_session_id``.
        Returns 201 for a new order and 200 when an ``Idempotency-Key`` is
        replayed.
        """
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        principal = Principal.from_request(request, data.get("guest_session_id"))
        dto = CreateOrderDTO(
            shipping_method=data["shipping_method"],
            shipping_address=data["shipping_address"],
            billing_address=data.get("billing_address"),
            payment_method=data.get("payment_method", ""),
            coupon_code=data.get("coupon_code"),
            notes=data.get("notes", ""),
            idempotency_key=request.headers.get(IDEMPOTENCY_HEADER),
        )

        result = self._service.create_order(principal, dto)
        if isinstance(result, Failure):
            return domain_error_response(result.error)
        placement = result.value
        return Response(
            _order_body(placement.order),
            status=status.HTTP_201_CREATED if placement.created else status.HTTP_200_OK,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @extend_schema(parameters=[OrderListQuerySerializer])
    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/?page=&limit=&status="""
        query = OrderListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        filters = {
            key: params[key] for key in ("start_date", "end_date") if key in params
        }
        result = self._service.list_orders(
            Principal.from_request(request),
            page=params.get("page", 1),
            limit=params.get("limit"),
            status=params.get("status") or None,
            filters=filters,
        )

        def render(page: Any) -> dict:
            return OrderListDTO(
                orders=[OrderSummaryDTO.from_entity(o) for o in page.orders],
                pagination=page.pagination,
            ).model_dump(mode="json")

        return _respond(result, render)

    def retrieve(self, request: Request, pk: Optional[str] = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        result = self._service.get_order(Principal.from_request(request), pk)
        return _respond(result, _order_body)

    @action(detail=True, methods=["get"])
    def history(self, request: Request, pk: Optional[str] = None) -> Response:
        """GET /api/v1/orders/{pk}/history/"""
        result = self._service.get_history(Principal.from_request(request), pk)
        return _respond(
            result,
            lambda entries: [
                StatusHistoryDTO.from_entity(h).model_dump(mode="json")
                for h in entries
            ],
        )

    # ------------------------------------------------------------------
    # Status update (staff)
    # ------------------------------------------------------------------

    @extend_schema(request=UpdateOrderStatusSerializer)
    @action(detail=True, methods=["put"], url_path="status")
    def update_status(self, request: Request, pk: Optional[str] = None) -> Response:
        """PUT /api/v1/orders/{pk}/status/"""
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self._service.update_status(
            Principal.from_request(request),
            pk,
            new_status=serializer.validated_data["status"],
            comment=serializer.validated_data.get("comment", ""),
        )
        return _respond(result, _order_body)

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    @extend_schema(request=CancelOrderSerializer)
    def destroy(self, request: Request, pk: Optional[str] = None) -> Response:
        """DELETE /api/v1/orders/{pk}/

        Cancels the order and restores its stock; the row is kept.
        """
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self._service.cancel_order(
            Principal.from_request(request),
            pk,
            reason=serializer.validated_data.get("reason"),
        )
        return _respond(
            result,
            lambda order: {
                "detail": "Order cancelled.",
                "order": _order_body(order),
            },
        )
