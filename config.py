"""Environment-driven settings for the expense tracker API"""
import os
from dotenv import load_dotenv

load_dotenv() # Searches for .env in current dir and parents

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "expense_tracker")
EXPENSES_COLLECTION = os.getenv("EXPENSES_COLLECTION", "expenses")

# Tokens are issued by the user service; we only verify them
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
AUTH_COOKIE_NAME = os.getenv("AUTH_COOKIE_NAME", "token")
ADMIN_ROLE = os.getenv("ADMIN_ROLE", "admin")

MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", str(1 * 1024 * 1024)))  # 1MB limit
UPLOAD_ENDPOINT_PATH = "/expense/upload-expenses-csv"
UPLOAD_RATE_LIMIT = os.getenv("UPLOAD_RATE_LIMIT", "15/minute")

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
