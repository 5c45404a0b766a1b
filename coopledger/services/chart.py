"""Default chart of accounts for a savings and loan cooperative."""
from sqlalchemy.orm import Session
from coopledger.models.ledger import AccountCategory, LedgerAccount
from coopledger.services.ledger import create_account
from typing import List
import logging

logger = logging.getLogger(__name__)

# Parents precede children
DEFAULT_ACCOUNTS = [
    {"account_code": "1000", "account_name": "Assets", "category": AccountCategory.ASSET},
    {"account_code": "1010", "account_name": "Cash", "category": AccountCategory.ASSET, "parent_code": "1000",
     "description": "Cash and bank balances"},
    {"account_code": "1200", "account_name": "Loans Receivable", "category": AccountCategory.ASSET, "parent_code": "1000",
     "description": "Outstanding loan principal owed by members"},
    {"account_code": "2000", "account_name": "Liabilities", "category": AccountCategory.LIABILITY},
    {"account_code": "2100", "account_name": "Member Savings", "category": AccountCategory.LIABILITY, "parent_code": "2000",
     "description": "Savings deposits held for members"},
    {"account_code": "3000", "account_name": "Equity", "category": AccountCategory.EQUITY},
    {"account_code": "3100", "account_name": "Share Capital", "category": AccountCategory.EQUITY, "parent_code": "3000",
     "description": "Member share capital"},
    {"account_code": "4000", "account_name": "Income", "category": AccountCategory.INCOME},
    {"account_code": "4100", "account_name": "Interest Income", "category": AccountCategory.INCOME, "parent_code": "4000",
     "description": "Interest income from loans"},
    {"account_code": "4200", "account_name": "Penalty Income", "category": AccountCategory.INCOME, "parent_code": "4000",
     "description": "Penalty income from late payments"},
    {"account_code": "5000", "account_name": "Expenses", "category": AccountCategory.EXPENSE},
    {"account_code": "5100", "account_name": "Operating Expense", "category": AccountCategory.EXPENSE, "parent_code": "5000"},
    {"account_code": "5200", "account_name": "Savings Interest Expense", "category": AccountCategory.EXPENSE, "parent_code": "5000",
     "description": "Interest credited to member savings"},
    {"account_code": "5300", "account_name": "Dividend Expense", "category": AccountCategory.EXPENSE, "parent_code": "5000",
     "description": "Dividends and average return paid to members"},
]


def seed_default_accounts(db: Session) -> List[str]:
    """Create any missing default accounts. Returns the codes created."""
    created = []
    for account_data in DEFAULT_ACCOUNTS:
        existing = db.query(LedgerAccount.id).filter(
            LedgerAccount.account_code == account_data["account_code"]
        ).first()
        if existing:
            continue
        create_account(db, **account_data)
        created.append(account_data["account_code"])

    if created:
        logger.info("Created %d ledger account(s): %s", len(created), ", ".join(created))
    return created
