# Overview: Service-layer operations for user lookup within a country.

from __future__ import annotations

from ..extensions import db
from ..models import Transaction, User
from ..errors import ScopeViolation, UserNotFound
from .session_service import ROLE_ADMIN


def list_country_users(country_id: int | None) -> list[dict]:
    """Users of a country with their unsettled transactions, by phone number."""
    query = db.session.query(User)
    if country_id is not None:
        query = query.filter(User.country_id == country_id)
    users = query.order_by(User.phone_number.asc()).all()

    result = []
    for user in users:
        unsettled = (
            db.session.query(Transaction)
            .filter(Transaction.user_id == user.id, Transaction.settled.is_(False))
            .order_by(Transaction.created_at.desc())
            .all()
        )
        data = user.to_dict()
        data["transactions"] = [t.to_dict(include_items=False) for t in unsettled]
        result.append(data)
    return result


def get_user(user_id: int, ctx) -> User:
    """Users may read themselves; admins any user in their country."""
    user = db.session.get(User, user_id)
    if user is None:
        raise UserNotFound("User not found")

    if ctx.role == ROLE_ADMIN:
        if ctx.country_id is not None and user.country_id != ctx.country_id:
            raise ScopeViolation("User belongs to another country")
    elif user.id != ctx.principal.id:
        raise ScopeViolation("You can only view your own account")

    return user
