"""
Currency ledger: every balance change is one transaction record.
"""
import logging
from typing import List, Optional, Tuple
from .database import Storage, User, Transaction, TransactionType
from .errors import ValidationError, InsufficientFundsError, PolicyError, NotFoundError, InvariantViolation

logger = logging.getLogger(__name__)


class Ledger:
    """Credits, debits and transfers against a storage backend."""

    def __init__(self, db: Storage):
        self.db = db

    def _require_user(self, user_id: int) -> User:
        user = self.db.get_user(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def _check_amount(amount) -> int:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError("amount", "Amount must be a whole number")
        if amount <= 0:
            raise ValidationError("amount", "Amount must be greater than 0")
        return amount

    def credit(
        self,
        user_id: int,
        amount: int,
        tx_type: TransactionType,
        description: str,
        game_id: Optional[int] = None,
    ) -> Transaction:
        """Add coins to a user's balance.

        Args:
            user_id: User to credit
            amount: Positive amount in coins
            tx_type: Transaction tag
            description: Free text shown in history
            game_id: Game record this credit settles, if any

        Returns:
            The stored transaction
        """
        amount = self._check_amount(amount)
        with self.db.user_lock(user_id):
            user = self._require_user(user_id)
            if tx_type == TransactionType.WIN:
                user.total_won += amount
            elif tx_type != TransactionType.REFUND:
                user.total_earned += amount
            user.highest_balance = max(user.highest_balance, user.balance + amount)

            tx = self.db.apply_transaction(user, amount, tx_type, description, game_id)
        logger.info(f"Credited {amount} to user {user_id} ({tx_type.value}), balance {tx.balance_after}")
        return tx

    def debit(
        self,
        user_id: int,
        amount: int,
        tx_type: TransactionType,
        description: str,
        game_id: Optional[int] = None,
    ) -> Transaction:
        """Remove coins from a user's balance. All or nothing.

        Raises:
            InsufficientFundsError: If amount exceeds the balance
        """
        amount = self._check_amount(amount)
        with self.db.user_lock(user_id):
            user = self._require_user(user_id)
            if amount > user.balance:
                raise InsufficientFundsError(user.balance, amount)
            if tx_type == TransactionType.BET:
                user.total_spent += amount

            tx = self.db.apply_transaction(user, -amount, tx_type, description, game_id)
        logger.info(f"Debited {amount} from user {user_id} ({tx_type.value}), balance {tx.balance_after}")
        return tx

    def transfer(
        self,
        from_user_id: int,
        to_user_id: int,
        amount: int,
        description: str = "",
        allow_transfers: bool = True,
    ) -> Tuple[Transaction, Transaction]:
        """Move coins between two users.

        Returns:
            Tuple of (sender transaction, recipient transaction)
        """
        if not allow_transfers:
            raise PolicyError("Transfers between users are disabled")
        amount = self._check_amount(amount)
        if from_user_id == to_user_id:
            raise ValidationError("recipient", "You cannot transfer coins to yourself")

        # Fixed lock order so two opposite transfers cannot deadlock
        first, second = sorted((from_user_id, to_user_id))
        with self.db.user_lock(first), self.db.user_lock(second):
            sender = self._require_user(from_user_id)
            recipient = self._require_user(to_user_id)
            if amount > sender.balance:
                raise InsufficientFundsError(sender.balance, amount)

            suffix = f": {description}" if description else ""
            sent = self.debit(
                from_user_id, amount, TransactionType.TRANSFER_OUT,
                f"Transfer to {recipient.display_name}{suffix}",
            )
            received = self.credit(
                to_user_id, amount, TransactionType.TRANSFER_IN,
                f"Transfer from {sender.display_name}{suffix}",
            )
        logger.info(f"Transferred {amount} from user {from_user_id} to user {to_user_id}")
        return sent, received

    def adjust_balance(self, user_id: int, amount: int, description: str = "Admin adjustment") -> Transaction:
        """Admin credit (positive) or debit (negative)."""
        if isinstance(amount, int) and not isinstance(amount, bool) and amount < 0:
            return self.debit(user_id, -amount, TransactionType.ADMIN, description)
        return self.credit(user_id, amount, TransactionType.ADMIN, description)

    def get_history(self, user_id: int, limit: Optional[int] = 50) -> List[Transaction]:
        """Newest first."""
        return self.db.get_user_transactions(user_id, limit)

    def replay_balance(self, user_id: int, initial_balance: int) -> int:
        """Rebuild a balance from the transaction log and check it against the stored one.

        Raises:
            InvariantViolation: If the log and the stored balance disagree
        """
        with self.db.user_lock(user_id):
            user = self._require_user(user_id)
            balance = initial_balance
            for tx in reversed(self.db.get_user_transactions(user_id, limit=None)):
                if tx.balance_before != balance or tx.balance_after != balance + tx.amount:
                    raise InvariantViolation(f"Transaction {tx.tx_id} breaks the balance chain")
                balance = tx.balance_after
            if balance != user.balance:
                raise InvariantViolation(
                    f"Replayed balance {balance} != stored balance {user.balance} for user {user_id}"
                )
        return balance
