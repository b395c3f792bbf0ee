"""Marketplace back-office Flask application (admin console and supplier/customer API)."""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, jsonify

from marketplace.config import AppConfig, load_env
from marketplace.db.session import setup_database
from marketplace.db.store import Store
from marketplace.errors import MarketplaceError, StoreError
from marketplace.services.category_service import CategoryService
from marketplace.services.logging import log_event, set_log_level
from marketplace.services.notifications import NotificationClient
from marketplace.services.order_service import OrderService
from marketplace.services.supplier_service import SupplierService
from routes import admin, api


def _handle_marketplace_error(exc: MarketplaceError):
    if isinstance(exc, StoreError):
        log_event("error", "store.error", message=str(exc), conflict=exc.conflict)
    return jsonify(exc.to_dict()), exc.status_code


def create_app(config: Optional[AppConfig] = None, notifier: Optional[NotificationClient] = None) -> Flask:
    config = config or load_env()
    logging.basicConfig(level=config.log_level)
    set_log_level(config.log_level)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["MARKETPLACE_CONFIG"] = config

    _, session_factory = setup_database(config.database_url)
    store = Store(session_factory)
    notifier = notifier or NotificationClient(config.notification_url, timeout=config.notification_timeout)

    components = {
        "store": store,
        "notifier": notifier,
        "category_service": CategoryService(store),
        "supplier_service": SupplierService(store, notifier),
        "order_service": OrderService(
            store,
            notifier,
            currency=config.currency,
            max_attempts=config.order_number_attempts,
        ),
    }
    app.extensions["marketplace_components"] = components

    app.register_error_handler(MarketplaceError, _handle_marketplace_error)
    app.register_blueprint(admin.admin_bp)
    app.register_blueprint(api.api_bp)

    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=False)


if __name__ == "__main__":
    main()
