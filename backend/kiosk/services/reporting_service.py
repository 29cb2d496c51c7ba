# Overview: Read-only reports for admins (user activity, outstanding balances).

from __future__ import annotations

import csv
import io
from collections import Counter
from decimal import Decimal

from ..extensions import db
from ..models import Transaction, User
from ..time_utils import to_utc_z, utcnow
from ..validation import money_str
from .country_service import get_country

TOP_PRODUCTS = 5


def users_report(country_id: int | None) -> list[dict]:
    """
    Per-user activity: totals, settled/unsettled counts and the most
    purchased products. country_id None reports all countries.
    """
    query = db.session.query(User)
    if country_id is not None:
        query = query.filter(User.country_id == country_id)

    report = []
    for user in query.order_by(User.phone_number.asc()).all():
        transactions = (
            db.session.query(Transaction)
            .filter(Transaction.user_id == user.id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .all()
        )

        product_counts: Counter = Counter()
        for transaction in transactions:
            for item in transaction.items:
                product_counts[item.product.name] += item.quantity

        total_spent = sum((t.total for t in transactions), Decimal("0.00"))
        settled = sum(1 for t in transactions if t.settled)

        report.append({
            "id": user.id,
            "phoneNumber": user.phone_number,
            "countryId": user.country_id,
            "countryName": user.country.name if user.country else "Unknown",
            "createdAt": to_utc_z(user.created_at),
            "totalTransactions": len(transactions),
            "totalSpent": money_str(total_spent),
            "settledTransactions": settled,
            "unsettledTransactions": len(transactions) - settled,
            "currentBalance": money_str(user.balance),
            "mostPurchasedProducts": [
                {"name": name, "count": count}
                for name, count in product_counts.most_common(TOP_PRODUCTS)
            ],
            "transactions": [t.to_dict() for t in transactions],
        })
    return report


def user_balances_csv(country_id: int) -> tuple[str, str]:
    """
    Outstanding balances for a country, highest first.

    Returns (filename, csv_text).
    """
    country = get_country(country_id)
    users = (
        db.session.query(User)
        .filter(User.country_id == country_id)
        .order_by(User.balance.desc(), User.id.asc())
        .all()
    )

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Phone Number", "Balance", "Unsettled Transactions", "Last Purchase Date"])

    for user in users:
        unsettled = (
            db.session.query(Transaction)
            .filter(Transaction.user_id == user.id, Transaction.settled.is_(False))
            .all()
        )
        last_purchase = (
            max(t.created_at for t in unsettled).date().isoformat() if unsettled else "N/A"
        )
        writer.writerow([user.phone_number, money_str(user.balance), len(unsettled), last_purchase])

    filename = f"user-balances-{country.name}-{utcnow().date().isoformat()}.csv"
    return filename, buffer.getvalue()
