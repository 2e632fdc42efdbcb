"""Cart API: list lines and add products, for users and guests."""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.cart.dtos import AddCartItemDTO, CartLine
from modules.cart.repositories.django_repository import CartDjangoSource
from modules.cart.serializers import AddCartItemSerializer, CartQuerySerializer
from modules.cart.services import CartService
from modules.core.exception_handler import domain_error_response
from modules.core.principal import Principal
from modules.products.repositories.django_repository import ProductDjangoRepository
from shared.domain.result import Failure


class CartView(APIView):
    permission_classes = [AllowAny]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._cart_source = CartDjangoSource()
        self._service = CartService(
            cart_source=self._cart_source,
            product_repository=ProductDjangoRepository(),
        )

    @extend_schema(parameters=[CartQuerySerializer])
    def get(self, request: Request) -> Response:
        """GET /api/v1/cart/"""
        query = CartQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        principal = Principal.from_request(
            request, query.validated_data.get("guest_session_id")
        )

        result = self._service.list_items(principal)
        if isinstance(result, Failure):
            return domain_error_response(result.error)
        lines = result.value
        return Response(
            {
                "items": [line.model_dump(mode="json") for line in lines],
                "item_count": len(lines),
                "total_quantity": sum(line.quantity for line in lines),
            }
        )

    @extend_schema(request=AddCartItemSerializer)
    def post(self, request: Request) -> Response:
        """POST /api/v1/cart/"""
        serializer = AddCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        principal = Principal.from_request(request, data.get("guest_session_id"))

        result = self._service.add_item(
            principal,
            AddCartItemDTO(product_id=data["product_id"], quantity=data["quantity"]),
        )
        if isinstance(result, Failure):
            return domain_error_response(result.error)
        item = result.value
        item.refresh_from_db()
        return Response(
            CartLine.from_entity(item).model_dump(mode="json"),
            status=status.HTTP_201_CREATED,
        )
