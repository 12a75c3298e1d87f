"""API Routes for expenses"""
import logging
from typing import Annotated, List, NoReturn, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from motor.motor_asyncio import AsyncIOMotorCollection

from models.expense import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    CSVUploadResponse,
    ExpenseCreate,
    ExpenseListResponse,
    ExpenseResponse,
    ExpenseUpdate,
    MessageResponse,
    MonthlyCategoryTotal,
)
from services import expenses_service
from services.errors import ExpenseNotFoundError, InvalidExpenseError
from services.query_builder import build_expense_query
from utils.auth import CurrentUser, get_current_user, require_admin
from utils.rate_limit import limiter, upload_rate_limit

router = APIRouter()
logger = logging.getLogger(__name__)

CSV_CONTENT_TYPES = ("text/csv", "application/csv", "application/vnd.ms-excel", "text/plain")

# --- Dependency Functions ---
def get_expenses_collection(request: Request) -> AsyncIOMotorCollection:
    """Dependency to get the MongoDB expenses collection from the application state."""
    collection = getattr(request.app.state, "expenses_collection", None)
    if collection is None:
        logger.error("Expenses collection not found in application state. Check MongoDB connection.")
        raise HTTPException(status_code=503, detail={"message": "Database service not available."})
    return collection

# Type hints for the dependencies
ExpensesCollectionDep = Annotated[AsyncIOMotorCollection, Depends(get_expenses_collection)]
CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
AdminUserDep = Annotated[CurrentUser, Depends(require_admin)]


def raise_http_error(error: Exception, action: str) -> NoReturn:
    """Maps service exceptions onto HTTP errors with a JSON body."""
    if isinstance(error, InvalidExpenseError):
        detail = {"message": error.message}
        if error.errors:
            detail["errors"] = error.errors
        raise HTTPException(status_code=400, detail=detail)
    if isinstance(error, ExpenseNotFoundError):
        raise HTTPException(status_code=404, detail={"message": error.message})
    if isinstance(error, ConnectionError):
        logger.error(f"Store error while {action}: {error}")
        raise HTTPException(status_code=500, detail={"message": f"Error {action}", "error": str(error)})
    logger.exception(f"Unexpected error while {action}: {error}")
    raise HTTPException(status_code=500, detail={"message": "Server error", "error": str(error)})

# --- API Routes ---
# Fixed paths are registered before /expense/{expense_id} so they are not captured by it.

@router.post("/expense/upload-expenses-csv", status_code=201, response_model=CSVUploadResponse, summary="Upload Expenses CSV")
@limiter.limit(upload_rate_limit)
async def upload_expenses_csv(
    request: Request,
    collection: ExpensesCollectionDep,
    current_user: CurrentUserDep,
    file: Optional[UploadFile] = File(None),
):
    """
    Imports expenses from a CSV file with optional columns title, amount,
    category, paymentMethod and date. Every row is validated before anything is
    stored; a single bad row rejects the whole upload.
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail={"message": "Please upload a CSV file"})
    logger.info(f"POST /expense/upload-expenses-csv called for file: {file.filename}")

    if file.content_type not in CSV_CONTENT_TYPES and not file.filename.lower().endswith(".csv"):
        logger.warning(f"Invalid file type attempted upload: {file.filename} ({file.content_type})")
        await file.close()
        raise HTTPException(status_code=400, detail={"message": f"Invalid file type: {file.content_type}. Please upload a CSV file."})

    try:
        owner_id = expenses_service.owner_object_id(current_user.id)
        content = await file.read()
        expenses = await expenses_service.import_expenses_csv(collection, content, owner_id)
    except Exception as e:
        raise_http_error(e, "saving expenses")
    finally:
        await file.close()
    return CSVUploadResponse(message="Expenses uploaded successfully", data=expenses)


@router.delete("/expense/bulk-delete", response_model=BulkDeleteResponse, summary="Bulk Delete Expenses")
async def bulk_delete_expenses(
    collection: ExpensesCollectionDep,
    current_user: CurrentUserDep,
    payload: Optional[BulkDeleteRequest] = None,
):
    expense_ids = payload.expense_ids if payload else []
    logger.info(f"DELETE /expense/bulk-delete called with {len(expense_ids)} ids")
    try:
        owner_id = expenses_service.owner_object_id(current_user.id)
        deleted_count = await expenses_service.bulk_delete_expenses(collection, expense_ids, owner_id)
    except Exception as e:
        raise_http_error(e, "deleting expenses")
    return BulkDeleteResponse(message="Expenses deleted successfully", deleted_count=deleted_count)


@router.get("/expense/statistics", response_model=List[MonthlyCategoryTotal], summary="Monthly Totals By Category")
async def get_statistics(collection: ExpensesCollectionDep, current_user: CurrentUserDep):
    """Monthly expense totals per category, newest month first."""
    try:
        owner_id = expenses_service.owner_object_id(current_user.id)
        return await expenses_service.get_monthly_statistics(collection, owner_id)
    except Exception as e:
        raise_http_error(e, "fetching statistics")


@router.post("/expense/create", status_code=201, response_model=ExpenseResponse, summary="Create Expense")
async def create_expense(payload: ExpenseCreate, collection: ExpensesCollectionDep, current_user: CurrentUserDep):
    try:
        owner_id = expenses_service.owner_object_id(current_user.id)
        expense = await expenses_service.create_expense(collection, payload, owner_id)
    except Exception as e:
        raise_http_error(e, "creating expense")
    return ExpenseResponse(message="Expense created successfully", data=expense)


@router.get("/expense/all", response_model=ExpenseListResponse, summary="List Expenses")
async def get_all_expenses(
    collection: ExpensesCollectionDep,
    current_user: AdminUserDep,
    category: Optional[str] = Query(None),
    payment_method: Optional[str] = Query(None, alias="paymentMethod"),
    start_date: Optional[str] = Query(None, alias="startDate", description="Inclusive lower bound, ISO date."),
    end_date: Optional[str] = Query(None, alias="endDate", description="Inclusive upper bound, ISO date."),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="One of title, amount, category, paymentMethod, date."),
    sort_order: str = Query("desc", alias="sortOrder", description="'asc' or 'desc'."),
    page: int = Query(1),
    limit: int = Query(10, description="Page size, clamped to 1..100."),
):
    """
    Lists the requester's expenses with filtering, sorting and pagination.
    Newest first unless sortBy is given.
    """
    logger.info(f"GET /expense/all called by user {current_user.id}")
    try:
        owner_id = expenses_service.owner_object_id(current_user.id)
        query = build_expense_query(
            owner_id,
            category=category,
            payment_method=payment_method,
            start_date=start_date,
            end_date=end_date,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
        result = await expenses_service.list_expenses(collection, query)
    except Exception as e:
        raise_http_error(e, "fetching expenses")
    return ExpenseListResponse(**result)


@router.get("/expense/{expense_id}", response_model=ExpenseResponse, summary="Get Expense")
async def get_expense(expense_id: str, collection: ExpensesCollectionDep, current_user: CurrentUserDep):
    try:
        owner_id = expenses_service.owner_object_id(current_user.id)
        expense = await expenses_service.get_expense(collection, expense_id, owner_id)
    except Exception as e:
        raise_http_error(e, "fetching expense")
    return ExpenseResponse(message="Expense retrieved successfully", data=expense)


@router.put("/expense/{expense_id}", response_model=ExpenseResponse, summary="Update Expense")
async def update_expense(
    expense_id: str,
    changes: ExpenseUpdate,
    collection: ExpensesCollectionDep,
    current_user: CurrentUserDep,
):
    """Merges the provided fields into the expense. Owner and id can not be changed."""
    try:
        owner_id = expenses_service.owner_object_id(current_user.id)
        expense = await expenses_service.update_expense(collection, expense_id, owner_id, changes)
    except Exception as e:
        raise_http_error(e, "updating expense")
    return ExpenseResponse(message="Expense updated successfully", data=expense)


@router.delete("/expense/{expense_id}", response_model=MessageResponse, summary="Delete Expense")
async def delete_expense(expense_id: str, collection: ExpensesCollectionDep, current_user: CurrentUserDep):
    try:
        owner_id = expenses_service.owner_object_id(current_user.id)
        await expenses_service.delete_expense(collection, expense_id, owner_id)
    except Exception as e:
        raise_http_error(e, "deleting expense")
    return MessageResponse(message="Expense deleted successfully")
