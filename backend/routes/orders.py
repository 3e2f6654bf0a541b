"""
Order endpoints — thin HTTP layer over the order orchestrator.
"""

import logging
from fastapi import APIRouter, Depends, Query, Response, status

from deps import get_orchestrator
from domain.enums import OrderStatus
from domain.responses import success_response
from models import CreateOrderRequest, order_to_dict
from services.order_orchestrator import OrderOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


@router.get("")
async def list_orders(orchestrator: OrderOrchestrator = Depends(get_orchestrator)):
    orders = await orchestrator.list_orders()
    return success_response(data=[order_to_dict(o) for o in orders], meta={"total": len(orders)})


@router.get("/user/{user_id}")
async def list_user_orders(
    user_id: int,
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
):
    orders = await orchestrator.list_orders_by_user(user_id)
    return success_response(data=[order_to_dict(o) for o in orders], meta={"total": len(orders)})


@router.get("/status/{order_status}")
async def list_orders_by_status(
    order_status: OrderStatus,
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
):
    orders = await orchestrator.list_orders_by_status(order_status)
    return success_response(data=[order_to_dict(o) for o in orders], meta={"total": len(orders)})


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
):
    order = await orchestrator.get_order(order_id)
    return success_response(data=order_to_dict(order))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
):
    order = await orchestrator.create_order(request)
    return success_response(data=order_to_dict(order))


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: int,
    new_status: OrderStatus = Query(..., alias="status"),
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
):
    order = await orchestrator.update_status(order_id, new_status)
    return success_response(data=order_to_dict(order))


@router.patch("/{order_id}/cancel")
async def cancel_order(
    order_id: int,
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
):
    order = await orchestrator.cancel_order(order_id)
    return success_response(data=order_to_dict(order))


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: int,
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
):
    await orchestrator.delete_order(order_id)
    logger.info(f"Order {order_id} deleted via API")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
