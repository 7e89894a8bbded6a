from .auth import User, Employee, SessionToken
from .journal import Transaction, TransactionItem
from .reimbursements import Reimbursement, ReimbursementItem
from .communications import Notification
from .activity import ActivityLog
from .settings import AppSetting, Category

__all__ = [
    'User', 'Employee', 'SessionToken',
    'Transaction', 'TransactionItem',
    'Reimbursement', 'ReimbursementItem',
    'Notification',
    'ActivityLog',
    'AppSetting', 'Category',
]
