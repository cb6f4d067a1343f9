import os
from dotenv import load_dotenv

# Load .env file
load_dotenv()

class Config:
    # --- Environment ---
    ENV = os.getenv("ENV", "development") # "development", "testing" or "production"
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # --- ERPNext (remote document store) ---
    # All three or none. A partial set is refused when the gateway is built.
    ERPNEXT_URL = os.getenv("ERPNEXT_URL")
    ERPNEXT_API_KEY = os.getenv("ERPNEXT_API_KEY")
    ERPNEXT_API_SECRET = os.getenv("ERPNEXT_API_SECRET")

    # --- Notification sinks ---
    N8N_WEBHOOK_URL = os.getenv("N8N_WEBHOOK_URL")
    TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")
    TELEGRAM_CHAT_ID = os.getenv("TELEGRAM_CHAT_ID")

    # --- Email Settings (Resend) ---
    RESEND_API_KEY = os.getenv("RESEND_API_KEY")
    MAIL_FROM = os.getenv("MAIL_FROM", "Lumen Creativo <onboarding@resend.dev>")
    TEAM_NOTIFICATION_EMAILS = [
        e.strip() for e in os.getenv("TEAM_NOTIFICATION_EMAILS", "").split(",") if e.strip()
    ]

    # --- Security Settings ---
    # In production, ALWAYS set this in .env. Never use the fallback.
    SECRET_KEY = os.getenv("SECRET_KEY")
    if ENV == "production" and not SECRET_KEY:
        raise ValueError("SECRET_KEY environment variable is mandatory in production!")
    elif not SECRET_KEY:
        SECRET_KEY = "dev_secret_key_change_in_prod"
    ALGORITHM = "HS256"
    SESSION_EXPIRE_MINUTES = 60 * 24 * 7 # 7 Days
    SESSION_COOKIE_NAME = "lumen_session"

    # Shared key for machine callers (n8n, Zapier) sent as X-API-Key
    LUMEN_API_KEY = os.getenv("LUMEN_API_KEY")

    # --- Local store ---
    # Without MONGO_URI the process-lifetime in-memory store is used.
    MONGO_URI = os.getenv("MONGO_URI")
    DB_NAME = os.getenv("DB_NAME", "lumen_hub")

    # --- First dashboard user (seeded only when the user store is empty) ---
    ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
    ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrador")

    def erp_settings(self) -> dict:
        return {
            "ERPNEXT_URL": self.ERPNEXT_URL,
            "ERPNEXT_API_KEY": self.ERPNEXT_API_KEY,
            "ERPNEXT_API_SECRET": self.ERPNEXT_API_SECRET,
        }

config = Config()
