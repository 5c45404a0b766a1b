from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path
from decimal import Decimal

# Find .env file - check coopledger/ directory first, then project root
BASE_DIR = Path(__file__).resolve().parent.parent.parent
PACKAGE_ENV = BASE_DIR / "coopledger" / ".env"
ROOT_ENV = BASE_DIR / ".env"

# Use coopledger/.env if it exists, otherwise try root .env
env_file = str(PACKAGE_ENV) if PACKAGE_ENV.exists() else (str(ROOT_ENV) if ROOT_ENV.exists() else ".env")


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./coopledger.db"

    # Accounting
    TRIAL_BALANCE_TOLERANCE: Decimal = Decimal("0.05")
    CASH_ACCOUNT_CODE: str = "1010"
    LOANS_RECEIVABLE_ACCOUNT_CODE: str = "1200"
    MEMBER_SAVINGS_ACCOUNT_CODE: str = "2100"
    INTEREST_INCOME_ACCOUNT_CODE: str = "4100"
    PENALTY_INCOME_ACCOUNT_CODE: str = "4200"
    SAVINGS_INTEREST_EXPENSE_ACCOUNT_CODE: str = "5200"
    DIVIDEND_EXPENSE_ACCOUNT_CODE: str = "5300"

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_INTERVAL_MINUTES: int = 1440

    # Audit
    AUDIT_LOG_DIR: Optional[str] = None

    # Application
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = env_file
        case_sensitive = True


settings = Settings()

# Derived paths
LOGS_DIR = Path(settings.AUDIT_LOG_DIR) if settings.AUDIT_LOG_DIR else BASE_DIR / "logs"
