"""Reference number generation utilities."""

import random
import string
from datetime import datetime
from typing import Awaitable, Callable

_ALPHABET = string.ascii_uppercase + string.digits


def _random_part(k: int) -> str:
    return "".join(random.choices(_ALPHABET, k=k))


async def generate_withdrawal_id(
    moment: datetime, exists: Callable[[str], Awaitable[bool]]
) -> str:
    """Generate a unique withdrawal id in format WD-YYYYMMDD-XXXXXXXX.

    Args:
        moment: Time of the withdrawal
        exists: Async check against payout ids already in the ledger

    Returns:
        str: Unique withdrawal id like 'WD-20240115-K9M2A7B3'
    """
    date_part = moment.strftime("%Y%m%d")
    while True:
        withdrawal_id = f"WD-{date_part}-{_random_part(8)}"
        if not await exists(withdrawal_id):
            return withdrawal_id


def generate_admin_payout_id(moment: datetime) -> str:
    """Generate an admin payout reference.

    Returns:
        str: Payout reference like 'PO-20240115-A3B7K9'
    """
    return f"PO-{moment.strftime('%Y%m%d')}-{_random_part(6)}"


def generate_payment_reference(prefix: str = "TXN") -> str:
    """Generate a simulated gateway transaction id.

    Returns:
        str: Transaction id like 'TXN-20240115-A3B7K9M2'
    """
    date_part = datetime.now().strftime("%Y%m%d")
    return f"{prefix}-{date_part}-{_random_part(8)}"
