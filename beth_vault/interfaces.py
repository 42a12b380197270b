"""Interfaces of the collaborators the vault talks to.

The vault stores only addresses; a resolver turns each address into an object
satisfying one of these protocols. Calls are synchronous and a failing call
raises, aborting the vault operation that made it.
"""

from contextlib import AbstractContextManager
from typing import Protocol


class ERC20(Protocol):
    def total_supply(self) -> int: ...

    def balance_of(self, owner: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None: ...


class StETH(ERC20, Protocol):
    """Lido stETH: a rebasing token backed by share accounting."""

    def get_total_shares(self) -> int: ...

    def shares_of(self, owner: str) -> int: ...

    def get_pooled_eth_by_shares(self, shares: int) -> int: ...

    def submit(self, sender: str, value: int, referral: str) -> int:
        """Stake `value` ETH on behalf of `sender`; returns the shares minted."""
        ...


class MintableToken(ERC20, Protocol):
    """bETH: only the vault may mint and burn."""

    def mint(self, minter: str, owner: str, amount: int) -> None: ...

    def burn(self, minter: str, owner: str, amount: int) -> None: ...


class BridgeConnector(Protocol):
    def forward_beth(self, terra_address: str, amount: int, extra_data: bytes) -> None: ...

    def forward_ust(self, terra_address: str, amount: int, extra_data: bytes) -> None: ...

    def adjust_amount(self, amount: int, decimals: int) -> int:
        """Round `amount` down to the precision the bridge can carry."""
        ...


class RewardsLiquidator(Protocol):
    def liquidate(self, ust_recipient: str) -> int:
        """Sell the liquidator's whole stETH balance; returns the UST sent to `ust_recipient`."""
        ...


class InsuranceConnector(Protocol):
    def total_shares_burnt(self) -> int: ...


class Host(Protocol):
    """The execution environment: a clock and all-or-nothing collaborator state."""

    def now(self) -> int: ...

    def atomic(self) -> AbstractContextManager: ...
