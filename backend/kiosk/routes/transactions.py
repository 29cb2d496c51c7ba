# Overview: Flask API routes for checkout transactions; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import KioskError, error_response
from ..services import transaction_service
from ..services.transaction_service import Basket
from ..services.session_service import ROLE_ADMIN
from ..decorators import require_auth
from ..validation import json_object


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    """Admins: their country's transactions. Users: their own."""
    try:
        transactions = transaction_service.list_transactions(g.session_context)
        include_user = g.role == ROLE_ADMIN
        return jsonify([t.to_dict(include_user=include_user) for t in transactions]), 200
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"message": "Internal server error"}), 500


@transactions_bp.post("")
@require_auth
def create_transaction_route():
    """
    Check out a basket on credit.

    Body: {items: [{productId, quantity, price?}], userId?}
    Prices are always taken from the catalog; a client price is ignored.
    """
    try:
        data = json_object(request.get_json(silent=True))
        basket = Basket.from_payload(data.get("items"))
        buyer_id = transaction_service.resolve_buyer_id(g.session_context, data.get("userId"))

        transaction = transaction_service.record_transaction(
            buyer_id,
            basket,
            scope_country_id=g.country_id if g.role == ROLE_ADMIN else None,
        )
        return jsonify(transaction.to_dict()), 201

    except KioskError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return jsonify({"message": "Internal server error"}), 500
