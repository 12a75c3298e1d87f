"""Aggregation pipeline for monthly expense totals per category."""
from typing import Any, Dict, List

from bson import ObjectId

MONTH_FORMAT = "%Y-%m"


def monthly_totals_pipeline(owner_id: ObjectId) -> List[Dict[str, Any]]:
    """
    Groups the owner's expenses by (year-month, category) and sums the amounts.
    Rows come back newest month first, categories alphabetical within a month.
    """
    return [
        {"$match": {"user": owner_id}},
        {
            "$group": {
                "_id": {
                    "month": {"$dateToString": {"format": MONTH_FORMAT, "date": "$date"}},
                    "category": "$category",
                },
                "totalAmount": {"$sum": "$amount"},
            }
        },
        {"$sort": {"_id.month": -1, "_id.category": 1}},
        {
            "$project": {
                "_id": 0,
                "month": "$_id.month",
                "category": "$_id.category",
                "totalAmount": 1,
            }
        },
    ]
