import os
from decimal import Decimal
from pathlib import Path


class Settings:
    """Application settings with environment variable overrides."""

    APP_NAME: str = "Gestion des Fonds - Caisse DGDA"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Paths
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    DATA_DIR: Path = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
    DB_PATH: Path = DATA_DIR / "caisse.db"

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        f"sqlite+aiosqlite:///{DB_PATH}",
    )

    # Auth
    SESSION_COOKIE_NAME: str = "caisse_session"
    SESSION_MAX_AGE: int = int(os.getenv("SESSION_MAX_AGE", "86400"))  # 24 hours
    MAX_FAILED_ATTEMPTS: int = int(os.getenv("MAX_FAILED_ATTEMPTS", "5"))
    LOCKOUT_MINUTES: int = int(os.getenv("LOCKOUT_MINUTES", "15"))
    DEFAULT_ADMIN_USERNAME: str = os.getenv("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_PASSWORD: str = os.getenv("DEFAULT_ADMIN_PASSWORD", "admin@123")

    # CORS
    ALLOWED_ORIGINS: list[str] = [
        o.strip()
        for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost").split(",")
        if o.strip()
    ]

    # Ledger
    # Earliest year the previous-balance walk may recurse into. Mandatory.
    BALANCE_FLOOR_YEAR: int = int(os.getenv("BALANCE_FLOOR_YEAR", "2024"))
    DEFAULT_PAGE_SIZE: int = 50
    FIRST_PAGE_CACHE_TTL: int = 30 * 60  # seconds
    IMPORTANT_EXPENSE_THRESHOLD: Decimal = Decimal(
        os.getenv("IMPORTANT_EXPENSE_THRESHOLD", "1000000")
    )
    CURRENCY_LABEL: str = "francs congolais"
    CURRENCY_SYMBOL: str = "FC"

    # Official report header / footer
    REPORT_HEADER_LINES: list[str] = [
        "République Démocratique du Congo",
        "Ministère des Finances",
        "Direction Générale des Douanes et Accises",
        "Direction Provinciale de Kinshasa-Ville",
    ]
    REPORT_FOOTER_LINES: list[str] = [
        "Tous mobilisés pour une douane d'action et d'excellence !",
        "Immeuble DGDA, Place LE ROYAL, Bld du 30 Juin, Kinshasa/Gombe",
        "B.P.8248 KIN I / Tél. : +243(0) 818 968 481 - +243 (0) 821 920 215",
        "Email : info@douane.gouv.cd ; contact@douane.gouv.cd - Web : https://www.douanes.gouv.cd",
    ]
    REPORT_WATERMARK: str = "DGDA"


settings = Settings()
