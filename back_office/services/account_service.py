"""
Account service: accounts, their cached balances and the account tree.

The cached current_balance is a projection of the ledger. It is
moved only by apply_balance_delta(), which the LedgerService
calls in the same transaction as the entry it records, and it
can always be rebuilt from the live entries with replay_balance().
"""

import logging
from decimal import Decimal

from sqlalchemy import select, update, func, or_
from sqlalchemy.orm import Session

from back_office.config import get_settings
from back_office.exceptions import NotFoundError, StateConflictError
from back_office.models.account import Account
from back_office.models.ledger_entry import LedgerEntry
from back_office.money import money
from back_office.schemas.account import (
    AccountCreate,
    AccountFilter,
    AccountTreeNode,
    BalanceCheck,
)

logger = logging.getLogger(__name__)


class AccountService:

    def __init__(self, db: Session):
        self.db = db

    def create_account(self, request: AccountCreate, branch_id: str) -> Account:
        """
        Open an account in a branch.

        Codes are unique per branch. A parent account, when given,
        must live in the same branch.
        """
        existing = self.db.execute(
            select(Account).where(
                Account.branch_id == branch_id,
                Account.code == request.code,
            )
        ).scalar_one_or_none()

        if existing:
            raise StateConflictError(
                f"Account with code '{request.code}' already exists"
            )

        if request.parent_account_id is not None:
            self.get_account(request.parent_account_id, branch_id)

        account = Account(
            branch_id=branch_id,
            code=request.code,
            name=request.name,
            account_type=request.account_type,
            currency=request.currency or get_settings().DEFAULT_CURRENCY,
            current_balance=Decimal("0"),
            payment_term_days=request.payment_term_days,
            parent_account_id=request.parent_account_id,
        )
        self.db.add(account)
        self.db.flush()
        logger.info("Opened account %s in branch %s", account.code, branch_id)
        return account

    def get_account(self, account_id: int, branch_id: str) -> Account:
        """Accounts in another branch are reported as not found."""
        account = self.db.get(Account, account_id)
        if not account or account.branch_id != branch_id:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    def list_accounts(
        self, branch_id: str, filters: AccountFilter | None = None
    ) -> list[Account]:
        filters = filters or AccountFilter()
        query = select(Account).where(Account.branch_id == branch_id)

        if filters.account_type is not None:
            query = query.where(Account.account_type == filters.account_type)
        if filters.is_active is not None:
            query = query.where(Account.is_active == filters.is_active)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.where(
                or_(Account.code.ilike(pattern), Account.name.ilike(pattern))
            )

        accounts = self.db.execute(
            query.order_by(Account.code).limit(filters.limit)
        ).scalars().all()
        return list(accounts)

    def deactivate_account(self, account_id: int, branch_id: str) -> Account:
        """Inactive accounts keep their history and take no new manual postings."""
        account = self.get_account(account_id, branch_id)
        if not account.is_active:
            raise StateConflictError(f"Account {account.code} is already inactive")
        account.is_active = False
        self.db.flush()
        logger.info("Deactivated account %s", account.code)
        return account

    def apply_balance_delta(self, account_id: int, delta: Decimal) -> None:
        """
        Move the cached balance by delta in one UPDATE statement.

        The addition happens in SQL, so concurrent postings to the
        same account never overwrite each other.
        """
        self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(current_balance=Account.current_balance + money(delta))
            .execution_options(synchronize_session="fetch")
        )

    def replay_balance(self, account_id: int) -> Decimal:
        """
        Rebuild the balance from the ledger: sum(debit) - sum(credit)
        over the account's live (non-cancelled) entries.
        """
        totals = self.db.execute(
            select(
                func.coalesce(func.sum(LedgerEntry.debit), 0),
                func.coalesce(func.sum(LedgerEntry.credit), 0),
            ).where(
                LedgerEntry.account_id == account_id,
                LedgerEntry.is_cancelled.is_(False),
            )
        ).one()
        return money(str(totals[0])) - money(str(totals[1]))

    def verify_balance(self, account_id: int, branch_id: str) -> BalanceCheck:
        account = self.get_account(account_id, branch_id)
        self.db.refresh(account)
        cached = money(str(account.current_balance))
        replayed = self.replay_balance(account.id)
        return BalanceCheck(
            account_id=account.id,
            code=account.code,
            cached_balance=cached,
            replayed_balance=replayed,
            difference=cached - replayed,
            matches=cached == replayed,
        )

    def account_tree(self, branch_id: str) -> list[AccountTreeNode]:
        """
        Build the account hierarchy of a branch.

        Accounts are loaded once and folded from their parent
        pointers. An account whose parent is missing from the
        branch is treated as a root.
        """
        accounts = self.db.execute(
            select(Account)
            .where(Account.branch_id == branch_id)
            .order_by(Account.code)
        ).scalars().all()

        by_id = {a.id: a for a in accounts}
        children: dict[int, list[Account]] = {}
        roots = []
        for account in accounts:
            if account.parent_account_id in by_id:
                children.setdefault(account.parent_account_id, []).append(account)
            else:
                roots.append(account)

        def build(account: Account) -> AccountTreeNode:
            nodes = [build(child) for child in children.get(account.id, [])]
            balance = money(str(account.current_balance))
            return AccountTreeNode(
                id=account.id,
                code=account.code,
                name=account.name,
                account_type=account.account_type,
                balance=balance,
                subtree_balance=balance + sum(
                    (n.subtree_balance for n in nodes), Decimal("0")
                ),
                children=nodes,
            )

        return [build(root) for root in roots]
