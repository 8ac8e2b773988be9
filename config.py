import os

from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./social_feed.db")
DB_BUSY_TIMEOUT = float(os.getenv("DB_BUSY_TIMEOUT", "15"))

# Auth
JWT_SECRET = os.getenv("JWT_SECRET", "insta-secret-key")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "0"))  # 0 = tokens never expire
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Uploads
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "uploads"))
UPLOAD_URL_PREFIX = "/uploads"
MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", str(50 * 1024 * 1024)))  # 50 MB

# Logging
LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.getcwd(), "logs"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ALLOW_ORIGINS = os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
