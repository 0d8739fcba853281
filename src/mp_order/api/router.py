"""mp_order REST endpoints (Bearer JWT required).

POST  /orders/checkout            — place an order from cart items
GET   /orders?role=buyer|seller   — caller's orders, newest first
GET   /orders/{id}                — buyer view with status timeline
PATCH /orders/{id}/status         — seller moves the order along its lifecycle
GET   /orders/{id}/messages       — buyer thread with seller or Vidyut
POST  /orders/{id}/messages
GET   /orders/{id}/invoice        — PDF
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query, Request, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_gateway.user.db_models import UserModel
from src.mp_order.application.invoice import invoice_filename, render_invoice
from src.mp_order.application.schemas import PostMessageRequest, StatusUpdateRequest
from src.mp_order.application.service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])

_service = OrderService()


@router.post("/checkout", status_code=status.HTTP_201_CREATED)
async def checkout(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    body: dict[str, Any] = Body(...),
) -> ApiResponse:
    result = await _service.checkout(db, str(current_user.id), body)
    resp = success_response(result.model_dump(), request)
    resp.message = "Order placed"
    return resp


@router.get("")
async def list_orders(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    role: str = Query("buyer", pattern="^(buyer|seller)$"),
) -> ApiResponse:
    result = await _service.list_orders(db, str(current_user.id), role)
    return success_response([o.model_dump() for o in result], request)


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_order(db, order_id, str(current_user.id))
    return success_response(result.model_dump(), request)


@router.patch("/{order_id}/status")
async def update_status(
    order_id: str,
    request: Request,
    body: StatusUpdateRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update_status(db, order_id, str(current_user.id), body.status)
    return success_response(result.model_dump(), request)


@router.get("/{order_id}/messages")
async def list_messages(
    order_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    target: str | None = Query(None),
) -> ApiResponse:
    result = await _service.list_messages(
        db, order_id, str(current_user.id), current_user.name, target
    )
    return success_response([m.model_dump() for m in result], request)


@router.post("/{order_id}/messages", status_code=status.HTTP_201_CREATED)
async def post_message(
    order_id: str,
    request: Request,
    body: PostMessageRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    target: str | None = Query(None),
) -> ApiResponse:
    result = await _service.post_message(
        db,
        order_id,
        str(current_user.id),
        current_user.name,
        body.target or target,
        body.content,
    )
    return success_response(result.model_dump(), request)


@router.get("/{order_id}/invoice")
async def invoice(
    order_id: str,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> Response:
    order = await _service.order_for_invoice(db, order_id, str(current_user.id))
    return Response(
        content=render_invoice(order),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{invoice_filename(order)}"',
            "Cache-Control": "private, max-age=0, must-revalidate",
        },
    )
