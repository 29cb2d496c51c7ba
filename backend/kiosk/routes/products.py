# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product catalog and inventory routes.

All routes are country-scoped through the session (g.country_id). Admin
sessions without a country see every country's catalog.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import KioskError, ScopeViolation, error_response
from ..services import inventory_service
from ..validation import json_object, parse_int, parse_money, require_text
from ..decorators import require_auth, require_admin
from ..services.session_service import ROLE_ADMIN


products_bp = Blueprint("products", __name__, url_prefix="/api/products")

REQUIRED_FIELDS = ("name", "image", "purchaseCost", "sellingPrice", "stock")


@products_bp.get("")
@require_auth
def list_products_route():
    if g.country_id is None and g.role != ROLE_ADMIN:
        return jsonify({"message": "Invalid country ID"}), 400

    try:
        products = inventory_service.list_products(g.country_id)
        return jsonify([product.to_dict() for product in products]), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"message": "Unable to fetch products"}), 500


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    """
    Create a product and pay for its opening stock from petty cash.

    Body: {name, image, purchaseCost, sellingPrice, stock, countryId?}
    countryId defaults to the session's country; a scoped admin may only
    create products in that country.
    """
    try:
        data = json_object(request.get_json(silent=True))

        missing = [field for field in REQUIRED_FIELDS if data.get(field) in (None, "")]
        if missing:
            return jsonify({
                "message": "Missing required fields",
                "details": {"missing": missing},
            }), 400

        country_id = data.get("countryId") or g.country_id
        if not country_id:
            return jsonify({
                "message": "Country ID is required to create products. Please select a country first."
            }), 400
        country_id = parse_int(country_id, "countryId", minimum=1)
        if g.country_id is not None and country_id != g.country_id:
            raise ScopeViolation("You can only create products in your country")

        product = inventory_service.create_product(
            name=require_text(data.get("name"), "name"),
            image=require_text(data.get("image"), "image", max_length=1024),
            purchase_cost=parse_money(data.get("purchaseCost"), "purchaseCost"),
            selling_price=parse_money(data.get("sellingPrice"), "sellingPrice", allow_zero=False),
            stock=parse_int(data.get("stock"), "stock", minimum=0),
            country_id=country_id,
            admin_id=g.current_principal.id,
        )
        return jsonify(product.to_dict()), 201

    except KioskError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"message": "Failed to create product"}), 500


@products_bp.post("/restock")
@require_auth
@require_admin
def restock_product_route():
    """Body: {productId, quantity, newCost?}"""
    try:
        data = json_object(request.get_json(silent=True))
        if not data.get("productId") or not data.get("quantity"):
            return jsonify({"message": "Invalid request data"}), 400

        new_cost = data.get("newCost")
        product = inventory_service.restock_product(
            parse_int(data.get("productId"), "productId", minimum=1),
            parse_int(data.get("quantity"), "quantity", minimum=1),
            new_cost=parse_money(new_cost, "newCost") if new_cost not in (None, "") else None,
            admin_id=g.current_principal.id,
            country_id=g.country_id,
        )
        return jsonify(product.to_dict()), 200

    except KioskError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return jsonify({"message": "Internal server error"}), 500
