"""Service layer for handling expense-related logic."""
import logging
from typing import Any, Dict, List

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection # Type hint for collection
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from models.expense import Expense, ExpenseCreate, ExpenseUpdate
from services.csv_import import parse_expenses_csv
from services.errors import ExpenseNotFoundError, InvalidExpenseError
from services.query_builder import ExpenseQuery
from services.statistics import monthly_totals_pipeline

logger = logging.getLogger(__name__)


# --- Identifier helpers ---

def owner_object_id(user_id: str) -> ObjectId:
    """Converts the authenticated user's id, rejecting anything that is not an ObjectId."""
    if not ObjectId.is_valid(user_id):
        raise InvalidExpenseError("Invalid user ID")
    return ObjectId(user_id)


def expense_object_id(expense_id: str) -> ObjectId:
    """A malformed id can never match a stored expense, so it reads as not found."""
    try:
        return ObjectId(expense_id)
    except (InvalidId, TypeError):
        raise ExpenseNotFoundError()


# --- Single record operations ---

async def create_expense(collection: AsyncIOMotorCollection, payload: ExpenseCreate, owner_id: ObjectId) -> Expense:
    document = payload.to_document(owner_id)
    try:
        result = await collection.insert_one(document)
    except PyMongoError as e:
        logger.error(f"Database error creating expense: {e}")
        raise ConnectionError(f"Error creating expense: {e}")
    document["_id"] = result.inserted_id
    logger.info(f"Created expense {result.inserted_id} for user {owner_id}.")
    return Expense.from_document(document)


async def get_expense(collection: AsyncIOMotorCollection, expense_id: str, owner_id: ObjectId) -> Expense:
    query = {"_id": expense_object_id(expense_id), "user": owner_id}
    try:
        document = await collection.find_one(query)
    except PyMongoError as e:
        logger.error(f"Database error fetching expense {expense_id}: {e}")
        raise ConnectionError(f"Error fetching expense: {e}")
    if document is None:
        raise ExpenseNotFoundError()
    return Expense.from_document(document)


async def update_expense(
    collection: AsyncIOMotorCollection,
    expense_id: str,
    owner_id: ObjectId,
    changes: ExpenseUpdate,
) -> Expense:
    """Merges the fields present in `changes` into the owner's expense."""
    query = {"_id": expense_object_id(expense_id), "user": owner_id}
    fields = changes.to_set_document()
    if not fields:
        logger.info(f"Empty update for expense {expense_id}, returning it unchanged.")
        return await get_expense(collection, expense_id, owner_id)
    try:
        document = await collection.find_one_and_update(
            query,
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        logger.error(f"Database error updating expense {expense_id}: {e}")
        raise ConnectionError(f"Error updating expense: {e}")
    if document is None:
        raise ExpenseNotFoundError()
    logger.info(f"Updated expense {expense_id}: {sorted(fields)}")
    return Expense.from_document(document)


async def delete_expense(collection: AsyncIOMotorCollection, expense_id: str, owner_id: ObjectId) -> None:
    query = {"_id": expense_object_id(expense_id), "user": owner_id}
    try:
        document = await collection.find_one_and_delete(query)
    except PyMongoError as e:
        logger.error(f"Database error deleting expense {expense_id}: {e}")
        raise ConnectionError(f"Error deleting expense: {e}")
    if document is None:
        raise ExpenseNotFoundError()
    logger.info(f"Deleted expense {expense_id} for user {owner_id}.")


# --- Listing and statistics ---

async def list_expenses(collection: AsyncIOMotorCollection, query: ExpenseQuery) -> Dict[str, Any]:
    """Runs a built ExpenseQuery and returns the page plus pagination totals."""
    logger.info(f"Listing expenses: filter={query.filter}, sort={query.sort}, page={query.page}, limit={query.limit}")
    try:
        cursor = collection.find(query.filter).sort(query.sort).skip(query.skip).limit(query.limit)
        documents = await cursor.to_list(length=None)
        total = await collection.count_documents(query.filter)
    except PyMongoError as e:
        logger.error(f"Database error listing expenses: {e}")
        raise ConnectionError(f"Error fetching expenses: {e}")
    return {
        "expenses": [Expense.from_document(doc) for doc in documents],
        "total_expenses": total,
        "total_pages": query.total_pages(total),
        "current_page": query.page,
    }


async def get_monthly_statistics(collection: AsyncIOMotorCollection, owner_id: ObjectId) -> List[Dict[str, Any]]:
    try:
        cursor = collection.aggregate(monthly_totals_pipeline(owner_id))
        rows = await cursor.to_list(length=None)
    except PyMongoError as e:
        logger.error(f"Database error aggregating statistics for user {owner_id}: {e}")
        raise ConnectionError(f"Error computing statistics: {e}")
    logger.info(f"Computed {len(rows)} monthly category totals for user {owner_id}.")
    return rows


# --- Bulk operations ---

async def import_expenses_csv(collection: AsyncIOMotorCollection, content: bytes, owner_id: ObjectId) -> List[Expense]:
    """
    Validates every CSV row first and inserts them as one batch only when all
    rows are valid.
    """
    documents, errors = parse_expenses_csv(content, owner_id)
    if errors:
        logger.warning(f"Rejected CSV upload for user {owner_id}: {len(errors)} invalid rows.")
        raise InvalidExpenseError(errors[0], errors=errors)
    if not documents:
        raise InvalidExpenseError("CSV file contains no expense rows")

    for document in documents:
        document["_id"] = ObjectId()
    try:
        await collection.insert_many(documents, ordered=True)
    except PyMongoError as e:
        logger.error(f"Database error during bulk insert: {e}")
        raise ConnectionError(f"Error saving expenses: {e}")
    logger.info(f"Inserted {len(documents)} expenses from CSV for user {owner_id}.")
    return [Expense.from_document(doc) for doc in documents]


async def bulk_delete_expenses(collection: AsyncIOMotorCollection, expense_ids: List[str], owner_id: ObjectId) -> int:
    """Deletes the listed expenses that belong to the owner and returns how many went."""
    if not expense_ids:
        raise InvalidExpenseError("No expense IDs provided for deletion")
    invalid = [expense_id for expense_id in expense_ids if not ObjectId.is_valid(expense_id)]
    if invalid:
        raise InvalidExpenseError(f"Invalid expense IDs: {', '.join(map(str, invalid))}")

    object_ids = [ObjectId(expense_id) for expense_id in expense_ids]
    try:
        result = await collection.delete_many({"_id": {"$in": object_ids}, "user": owner_id})
    except PyMongoError as e:
        logger.error(f"Database error during delete_many operation: {e}")
        raise ConnectionError(f"Error deleting expenses: {e}")
    if result.deleted_count == 0:
        raise ExpenseNotFoundError("No expenses found to delete")
    logger.info(f"Bulk deleted {result.deleted_count} of {len(expense_ids)} requested expenses for user {owner_id}.")
    return result.deleted_count
