# Overview: Flask API routes for countries; public catalog of tenants.

from flask import Blueprint, jsonify

from ..errors import KioskError, error_response
from ..services import country_service


countries_bp = Blueprint("countries", __name__, url_prefix="/api/countries")


@countries_bp.get("")
def list_countries_route():
    countries = country_service.list_countries()
    return jsonify([country.to_summary() for country in countries]), 200


@countries_bp.get("/<int:country_id>")
def get_country_route(country_id: int):
    try:
        return jsonify(country_service.get_country(country_id).to_dict()), 200
    except KioskError as e:
        return error_response(e)
