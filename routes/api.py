"""Customer checkout and supplier order-management API."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from marketplace.errors import ValidationError
from marketplace.services.order_lifecycle import allowed_next_statuses
from marketplace.utils.dto import to_dto, to_dtos


api_bp = Blueprint("marketplace_api", __name__, url_prefix="/api")


def _components() -> Dict[str, Any]:
    return current_app.extensions["marketplace_components"]


def _orders():
    return _components()["order_service"]


def _order_payload(order: Dict[str, Any]) -> Dict[str, Any]:
    payload = to_dto(order)
    payload["next_statuses"] = list(allowed_next_statuses(order.get("status")))
    return payload


@api_bp.post("/checkout")
def checkout():
    payload = request.get_json(silent=True) or {}
    orders = _orders().place_orders(
        user_id=payload.get("user_id"),
        lines=payload.get("items") or [],
        delivery_address=payload.get("delivery_address"),
        delivery_instructions=payload.get("delivery_instructions"),
        notes=payload.get("notes"),
        payment_method=payload.get("payment_method") or "cash_on_delivery",
    )
    return jsonify({"status": "ok", "orders": [_order_payload(o) for o in orders]}), 201


@api_bp.get("/orders")
def customer_orders():
    user_id = (request.args.get("user_id") or "").strip()
    if not user_id:
        raise ValidationError("user_id", "is required")
    orders = _orders().list_customer_orders(user_id)
    return jsonify({"status": "ok", "orders": [_order_payload(o) for o in orders]})


@api_bp.get("/orders/<order_id>")
def order_detail(order_id: str):
    return jsonify({"status": "ok", "order": _order_payload(_orders().get_order(order_id))})


@api_bp.get("/suppliers/<supplier_id>/orders")
def supplier_orders(supplier_id: str):
    result = _orders().list_supplier_orders(
        supplier_id,
        status=request.args.get("status"),
        search=request.args.get("q"),
        page=request.args.get("page", 1, type=int),
        page_size=request.args.get("page_size", 20, type=int),
    )
    result["items"] = [_order_payload(o) for o in result["items"]]
    return jsonify({"status": "ok", **result})


@api_bp.post("/suppliers/<supplier_id>/orders/<order_id>/status")
def change_order_status(supplier_id: str, order_id: str):
    payload = request.get_json(silent=True) or {}
    status = str(payload.get("status", "")).strip()
    if not status:
        raise ValidationError("status", "is required")
    order = _orders().update_status(order_id, status, supplier_id=supplier_id)
    return jsonify({"status": "ok", "order": _order_payload(order)})


@api_bp.put("/suppliers/<supplier_id>/orders/<order_id>/notes")
def change_order_notes(supplier_id: str, order_id: str):
    payload = request.get_json(silent=True) or {}
    order = _orders().update_notes(order_id, payload.get("notes"), supplier_id=supplier_id)
    return jsonify({"status": "ok", "order": to_dto(order)})


@api_bp.put("/suppliers/<supplier_id>/orders/<order_id>/estimated-time")
def change_estimated_time(supplier_id: str, order_id: str):
    payload = request.get_json(silent=True) or {}
    order = _orders().update_estimated_time(
        order_id, payload.get("estimated_delivery_time"), supplier_id=supplier_id
    )
    return jsonify({"status": "ok", "order": to_dto(order)})
