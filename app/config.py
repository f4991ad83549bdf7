import os


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: Supabase / Render hand out "postgres://" URLs
    # which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or None

    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:3001")

    # --- Firebase (identity) ---
    FIREBASE_PROJECT_ID = os.environ.get("FIREBASE_PROJECT_ID")
    # Web config handed to the browser client. These values are public.
    FIREBASE_API_KEY = os.environ.get("FIREBASE_API_KEY")
    FIREBASE_AUTH_DOMAIN = os.environ.get("FIREBASE_AUTH_DOMAIN")
    FIREBASE_STORAGE_BUCKET = os.environ.get("FIREBASE_STORAGE_BUCKET")
    FIREBASE_MESSAGING_SENDER_ID = os.environ.get("FIREBASE_MESSAGING_SENDER_ID")
    FIREBASE_APP_ID = os.environ.get("FIREBASE_APP_ID")

    # --- Supabase Storage (attachments) ---
    SUPABASE_URL = os.environ.get("SUPABASE_URL")                  # e.g. https://xyz.supabase.co
    SUPABASE_SERVICE_KEY = os.environ.get("SUPABASE_SERVICE_KEY")  # service_role key, server only
    SUPABASE_STORAGE_BUCKET = os.environ.get("SUPABASE_STORAGE_BUCKET", "note-attachments")
    MAX_ATTACHMENT_SIZE = int(os.environ.get("MAX_ATTACHMENT_SIZE", 10 * 1024 * 1024))

    # --- Dodo Payments ---
    DODO_PAYMENTS_API_KEY = os.environ.get("DODO_PAYMENTS_API_KEY")
    DODO_WEBHOOK_SECRET = os.environ.get("DODO_WEBHOOK_SECRET")  # whsec_...
    DODO_PRODUCT_ID = os.environ.get("DODO_PRODUCT_ID")
    DODO_ENVIRONMENT = os.environ.get("DODO_ENVIRONMENT", "test_mode")  # test_mode | live_mode
    SUBSCRIPTION_TYPE = os.environ.get("SUBSCRIPTION_TYPE", "premium")
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "USD")

    # Upper bound (seconds) for every outbound provider call.
    PROVIDER_TIMEOUT_SECONDS = float(os.environ.get("PROVIDER_TIMEOUT_SECONDS", 10))

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # Werkzeug rejects request bodies above this with 413.
    MAX_CONTENT_LENGTH = MAX_ATTACHMENT_SIZE + 1024 * 1024

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "DATABASE_URL",
            "FIREBASE_PROJECT_ID",
            "DODO_PAYMENTS_API_KEY",
            "DODO_WEBHOOK_SECRET",
            "DODO_PRODUCT_ID",
            "APP_BASE_URL",
        ]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True


class TestConfig(Config):
    """Testing — in-memory SQLite, providers faked."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    FIREBASE_PROJECT_ID = "noteapp-test"
    FIREBASE_API_KEY = "test-api-key"
    FIREBASE_AUTH_DOMAIN = "noteapp-test.firebaseapp.com"
    SUPABASE_URL = None  # local disk fallback
    SUPABASE_SERVICE_KEY = None
    DODO_PAYMENTS_API_KEY = "dodo_test_fake"
    # Standard Webhooks secret: "whsec_" + base64 key
    DODO_WEBHOOK_SECRET = "whsec_MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw"
    DODO_PRODUCT_ID = "pdt_test_premium"
    DODO_ENVIRONMENT = "test_mode"
    APP_BASE_URL = "http://localhost:3001"
    RATELIMIT_ENABLED = False  # disable rate limiting in tests

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
