"""
Transaction construction and confirmation core.

Address parsing, amount encoding, instruction builders, token account
resolution, transaction assembly, submission and confirmation polling.
"""

from sol_sender.core.address import AddressCodec
from sol_sender.core.confirmation import ConfirmationOutcome, ConfirmationPoller, ConfirmationStatus
from sol_sender.core.resolver import AccountResolver, Resolution, TokenAccount
from sol_sender.core.submitter import Submitter
from sol_sender.core.transaction import Transaction, assemble

__all__ = [
    "AccountResolver",
    "AddressCodec",
    "ConfirmationOutcome",
    "ConfirmationPoller",
    "ConfirmationStatus",
    "Resolution",
    "Submitter",
    "TokenAccount",
    "Transaction",
    "assemble",
]
