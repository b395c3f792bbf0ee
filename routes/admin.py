"""Admin console routes: category hierarchy and supplier approval."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request, session

from marketplace.utils.dto import to_dto, to_dtos


admin_bp = Blueprint("marketplace_admin", __name__, url_prefix="/admin")


def _components() -> dict:
    return current_app.extensions["marketplace_components"]


def _config():
    return current_app.config["MARKETPLACE_CONFIG"]


def _is_authenticated() -> bool:
    return bool(session.get("marketplace_admin"))


@admin_bp.before_request
def guard_private_routes():
    if request.endpoint and request.endpoint.startswith("marketplace_admin."):
        public = {"marketplace_admin.login_submit"}
        if request.endpoint not in public and not _is_authenticated():
            return jsonify({"status": "error", "message": "Admin login required"}), 401
    return None


@admin_bp.post("/login")
def login_submit():
    payload = request.get_json(silent=True) or request.form
    username = str(payload.get("username", "")).strip()
    password = str(payload.get("password", "")).strip()
    cfg = _config()
    if username == cfg.admin_username and password == cfg.admin_password:
        session["marketplace_admin"] = True
        session["admin_email"] = payload.get("email") or username
        return jsonify({"status": "ok"})
    return jsonify({"status": "error", "message": "Invalid username or password"}), 401


@admin_bp.get("/logout")
def logout():
    session.pop("marketplace_admin", None)
    session.pop("admin_email", None)
    return jsonify({"status": "ok"})


@admin_bp.get("/categories")
def list_categories():
    service = _components()["category_service"]
    tree = service.get_tree(request.args.get("q"))
    return jsonify({"status": "ok", "categories": to_dtos(tree)})


@admin_bp.get("/categories/options")
def category_options():
    service = _components()["category_service"]
    options = service.parent_options(request.args.get("exclude") or None)
    return jsonify({"status": "ok", "options": to_dtos(options)})


@admin_bp.post("/categories")
def create_category():
    payload = request.get_json(silent=True) or {}
    row = _components()["category_service"].create_category(payload)
    return jsonify({"status": "ok", "category": to_dto(row)}), 201


@admin_bp.put("/categories/<category_id>")
def update_category(category_id: str):
    payload = request.get_json(silent=True) or {}
    row = _components()["category_service"].update_category(category_id, payload)
    return jsonify({"status": "ok", "category": to_dto(row)})


@admin_bp.delete("/categories/<category_id>")
def delete_category(category_id: str):
    _components()["category_service"].delete_category(category_id)
    return jsonify({"status": "ok"})


@admin_bp.get("/suppliers")
def list_suppliers():
    rows = _components()["supplier_service"].list_suppliers(request.args.get("status"))
    return jsonify({"status": "ok", "suppliers": to_dtos(rows)})


@admin_bp.post("/suppliers/<supplier_id>/<action>")
def supplier_action(supplier_id: str, action: str):
    service = _components()["supplier_service"]
    result = service.apply_action(supplier_id, action, session.get("admin_email"))
    return jsonify(
        {
            "status": "ok",
            "supplier": to_dto(result["supplier"]),
            "notification_sent": result["notification_sent"],
        }
    )


@admin_bp.post("/suppliers/bulk")
def supplier_bulk_action():
    payload = request.get_json(silent=True) or {}
    results = _components()["supplier_service"].bulk_action(
        payload.get("supplier_ids") or [],
        str(payload.get("action", "")),
        session.get("admin_email"),
    )
    return jsonify(
        {
            "status": "ok",
            "suppliers": [to_dto(r["supplier"]) for r in results],
            "notifications_sent": sum(1 for r in results if r["notification_sent"]),
        }
    )
