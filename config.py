import os
from dotenv import load_dotenv

# Load .env file
load_dotenv()

class Config:
    # --- MongoDB Settings ---
    MONGO_URI = os.getenv("MONGO_URI")
    DB_NAME = os.getenv("DB_NAME", "taskpulse") # Defaults to taskpulse, can be overridden in .env

    # --- Environment ---
    ENV = os.getenv("ENV", "development") # "development" or "production"
    LOG_LEVEL = os.getenv("LOG_LEVEL") # Defaults to DEBUG in development, INFO elsewhere
    LOG_DIR = os.getenv("LOG_DIR") # Rotating JSON log location, defaults to ./logs
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # --- Security Settings ---
    # Tokens are issued by the auth service; we only verify them.
    SECRET_KEY = os.getenv("SECRET_KEY")
    if ENV == "production" and not SECRET_KEY:
        raise ValueError("SECRET_KEY environment variable is mandatory in production!")
    elif not SECRET_KEY:
        SECRET_KEY = "dev_secret_key_change_in_prod"
    ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7 # 7 Days

    # --- Email Settings (Resend) ---
    RESEND_API_KEY = os.getenv("RESEND_API_KEY")
    MAIL_FROM = os.getenv("MAIL_FROM", "notifications@taskpulse.local")

    # --- Report Documents ---
    ORG_NAME = os.getenv("ORG_NAME", "TaskPulse")
    BRANDING_LOGO_PATH = os.getenv("BRANDING_LOGO_PATH")  # Optional PNG/JPEG shown above the title

    # --- Realtime Stream ---
    SSE_HEARTBEAT_SECONDS = float(os.getenv("SSE_HEARTBEAT_SECONDS", "30"))
    STREAM_URL = os.getenv("STREAM_URL", "http://localhost:8000/api/notifications/stream")
    STREAM_MAX_RECONNECT_ATTEMPTS = int(os.getenv("STREAM_MAX_RECONNECT_ATTEMPTS", "5"))
    STREAM_BASE_DELAY_SECONDS = float(os.getenv("STREAM_BASE_DELAY_SECONDS", "1.0"))
    STREAM_MAX_DELAY_SECONDS = float(os.getenv("STREAM_MAX_DELAY_SECONDS", "30.0"))

config = Config()
