from decimal import Decimal

from dotenv import load_dotenv
import os

load_dotenv()

# Share of a seller's completed-order revenue kept by the platform.
PLATFORM_FEE_RATE = Decimal("0.05")
# Days between order date and the delivery date set on completion.
DELIVERY_DELAY_DAYS = 3


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    MONGO_URL = os.getenv("MONGO_URL", "mongodb://mongo:27017")
    MONGO_DB = os.getenv("MONGO_DB", "marketplace")
    MONGO_TRANSACTIONS = _flag("MONGO_TRANSACTIONS")

    JWT_SECRET = os.getenv("JWT_SECRET", "secret")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES = os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60)

    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))

    OTP_LENGTH = int(os.getenv("OTP_LENGTH", 6))
    OTP_EXPIRE_MINUTES = int(os.getenv("OTP_EXPIRE_MINUTES", 5))

    RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
    MAIL_FROM = os.getenv("MAIL_FROM", "Marketplace <no-reply@marketplace.local>")

    S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL", "http://minio:9000")
    S3_ACCESS_KEY = os.getenv("S3_ACCESS_KEY", "minio")
    S3_SECRET_KEY = os.getenv("S3_SECRET_KEY", "minio123")
    S3_BUCKET = os.getenv("S3_BUCKET", "uploads")
    PUBLIC_FILES_URL = os.getenv("PUBLIC_FILES_URL", "/uploads")

    OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")

    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
