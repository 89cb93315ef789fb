"""
Token custody boundary.

The engine never owns balance semantics. It moves tokens through a
`TokenBank`: anything with ERC-20-style `balance_of` and `transfer` will do.
"""

from __future__ import annotations

from typing import Protocol

from anti_geyser.types import Uint256
from anti_geyser.types.exceptions import InsufficientBalance


class TokenBank(Protocol):
    """Protocol for a fungible token ledger."""

    symbol: str
    """Ticker of the token, used in logs and reports."""

    def balance_of(self, account: str) -> Uint256:
        """Balance of an account, zero for unknown accounts."""
        ...

    def transfer(self, sender: str, recipient: str, amount: Uint256) -> None:
        """
        Move tokens between accounts.

        Raises:
            InsufficientBalance: If the sender cannot fund the transfer.
        """
        ...


class InMemoryTokenBank:
    """
    A process-local token ledger.

    Balances live in a dict. Tokens enter circulation through `mint`, which
    is how tests, the simulator and the service fund accounts and the reward
    pool.
    """

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        self._balances: dict[str, Uint256] = {}
        self._total_supply = Uint256(0)

    @property
    def total_supply(self) -> Uint256:
        """Tokens minted so far."""
        return self._total_supply

    def balance_of(self, account: str) -> Uint256:
        """Balance of an account, zero for unknown accounts."""
        return self._balances.get(account, Uint256(0))

    def mint(self, account: str, amount: Uint256) -> None:
        """Create new tokens in an account."""
        self._balances[account] = self.balance_of(account) + amount
        self._total_supply = self._total_supply + amount

    def transfer(self, sender: str, recipient: str, amount: Uint256) -> None:
        """
        Move tokens between accounts.

        Raises:
            InsufficientBalance: If the sender cannot fund the transfer.
        """
        available = self.balance_of(sender)
        if int(amount) > int(available):
            raise InsufficientBalance(sender, int(amount), int(available))
        self._balances[sender] = available - amount
        self._balances[recipient] = self.balance_of(recipient) + amount
