"""In-memory host and collaborators for simulations and tests.

`LocalHost` keeps a registry of contracts by address, a settable clock, and
reverts every registered contract to its previous state when an `atomic()`
block raises, which is what a transaction revert does on chain.
"""

import copy
from contextlib import contextmanager
from typing import Any

from beth_vault.constants import RATE_SCALE, ZERO_ADDRESS


class LocalLedgerError(Exception):
    """A local collaborator call failed (the on-chain equivalent of a revert)."""


class LocalHost:
    def __init__(self, timestamp: int = 0):
        self.timestamp = timestamp
        self._contracts: dict[str, Any] = {}

    def deploy(self, address: str, contract: Any) -> Any:
        key = address.lower()
        if key in self._contracts:
            raise LocalLedgerError(f"address already in use: {address}")
        self._contracts[key] = contract
        return contract

    def resolve(self, address: str) -> Any:
        try:
            return self._contracts[address.lower()]
        except KeyError:
            raise LocalLedgerError(f"no contract at {address}") from None

    def now(self) -> int:
        return self.timestamp

    def sleep(self, seconds: int) -> None:
        self.timestamp += seconds

    @contextmanager
    def atomic(self):
        # Contracts may hold references to the host or to each other; the memo
        # keeps those shared instead of copying them.
        memo: dict[int, Any] = {id(self): self}
        memo.update({id(c): c for c in self._contracts.values()})
        saved = {key: copy.deepcopy(vars(c), memo) for key, c in self._contracts.items()}
        try:
            yield
        except BaseException:
            for key, state in saved.items():
                contract_vars = vars(self._contracts[key])
                contract_vars.clear()
                contract_vars.update(state)
            raise


class LocalStETH:
    """
    Share-based rebasing token modelled on Lido stETH.

    Balances are shares times the pooled ether per share, so `rebase` changes
    every holder's balance at once and `burn_shares` raises the share price
    without adding ether.
    """

    def __init__(self, address: str):
        self.address = address
        self.total_pooled_ether = 0
        self.total_shares = 0
        self.shares: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}

    def get_total_shares(self) -> int:
        return self.total_shares

    def total_supply(self) -> int:
        return self.total_pooled_ether

    def shares_of(self, owner: str) -> int:
        return self.shares.get(owner.lower(), 0)

    def get_pooled_eth_by_shares(self, shares: int) -> int:
        if self.total_shares == 0:
            return 0
        return (shares * self.total_pooled_ether) // self.total_shares

    def get_shares_by_pooled_eth(self, amount: int) -> int:
        if self.total_pooled_ether == 0:
            return 0
        return (amount * self.total_shares) // self.total_pooled_ether

    def balance_of(self, owner: str) -> int:
        return self.get_pooled_eth_by_shares(self.shares_of(owner))

    def submit(self, sender: str, value: int, referral: str = ZERO_ADDRESS) -> int:
        if value <= 0:
            raise LocalLedgerError("ZERO_DEPOSIT")
        if self.total_pooled_ether == 0:
            shares = value
        else:
            shares = self.get_shares_by_pooled_eth(value)
        self.shares[sender.lower()] = self.shares_of(sender) + shares
        self.total_shares += shares
        self.total_pooled_ether += value
        return shares

    def _transfer_shares(self, sender: str, recipient: str, shares: int) -> None:
        balance = self.shares_of(sender)
        if shares > balance:
            raise LocalLedgerError("TRANSFER_AMOUNT_EXCEEDS_BALANCE")
        self.shares[sender.lower()] = balance - shares
        self.shares[recipient.lower()] = self.shares_of(recipient) + shares

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        self._transfer_shares(sender, recipient, self.get_shares_by_pooled_eth(amount))

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self.allowances[(owner.lower(), spender.lower())] = amount

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        key = (owner.lower(), spender.lower())
        allowance = self.allowances.get(key, 0)
        if amount > allowance:
            raise LocalLedgerError("TRANSFER_AMOUNT_EXCEEDS_ALLOWANCE")
        self._transfer_shares(owner, recipient, self.get_shares_by_pooled_eth(amount))
        self.allowances[key] = allowance - amount

    def rebase(self, delta_wei: int) -> None:
        """Apply an oracle report: positive for rewards, negative for penalties."""
        if self.total_pooled_ether + delta_wei < 0:
            raise LocalLedgerError("negative pooled ether")
        self.total_pooled_ether += delta_wei

    def burn_shares(self, owner: str, shares: int) -> None:
        balance = self.shares_of(owner)
        if shares > balance:
            raise LocalLedgerError("BURN_AMOUNT_EXCEEDS_BALANCE")
        self.shares[owner.lower()] = balance - shares
        self.total_shares -= shares


class LocalToken:
    """A plain mintable token; only `minter` may mint and burn."""

    def __init__(self, address: str, minter: str):
        self.address = address
        self.minter = minter
        self.supply = 0
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}

    def total_supply(self) -> int:
        return self.supply

    def balance_of(self, owner: str) -> int:
        return self.balances.get(owner.lower(), 0)

    def _check_minter(self, caller: str) -> None:
        if caller.lower() != self.minter.lower():
            raise LocalLedgerError("not the minter")

    def mint(self, minter: str, owner: str, amount: int) -> None:
        self._check_minter(minter)
        self.balances[owner.lower()] = self.balance_of(owner) + amount
        self.supply += amount

    def burn(self, minter: str, owner: str, amount: int) -> None:
        self._check_minter(minter)
        balance = self.balance_of(owner)
        if amount > balance:
            raise LocalLedgerError("burn amount exceeds balance")
        self.balances[owner.lower()] = balance - amount
        self.supply -= amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        balance = self.balance_of(sender)
        if amount > balance:
            raise LocalLedgerError("transfer amount exceeds balance")
        self.balances[sender.lower()] = balance - amount
        self.balances[recipient.lower()] = self.balance_of(recipient) + amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self.allowances[(owner.lower(), spender.lower())] = amount

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        key = (owner.lower(), spender.lower())
        allowance = self.allowances.get(key, 0)
        if amount > allowance:
            raise LocalLedgerError("transfer amount exceeds allowance")
        self.transfer(owner, recipient, amount)
        self.allowances[key] = allowance - amount


class LocalBridgeConnector:
    """
    Bridge adapter that locks forwarded tokens in an escrow address.

    Amounts are truncated to `precision` decimals, like a bridge carrying
    8-decimal amounts does.
    """

    def __init__(self, address: str, beth: LocalToken, ust: LocalToken, *, precision: int = 18, escrow: str):
        self.address = address
        self.beth = beth
        self.ust = ust
        self.precision = precision
        self.escrow = escrow
        self.forwarded: list[tuple[str, str, int, bytes]] = []

    def adjust_amount(self, amount: int, decimals: int) -> int:
        if decimals <= self.precision:
            return amount
        unit = 10 ** (decimals - self.precision)
        return amount - amount % unit

    def forward_beth(self, terra_address: str, amount: int, extra_data: bytes) -> None:
        self.beth.transfer(self.address, self.escrow, amount)
        self.forwarded.append(("bETH", terra_address, amount, extra_data))

    def forward_ust(self, terra_address: str, amount: int, extra_data: bytes) -> None:
        self.ust.transfer(self.address, self.escrow, amount)
        self.forwarded.append(("UST", terra_address, amount, extra_data))


class LocalLiquidator:
    """Sells its whole stETH balance for UST at a fixed price (UST per stETH, 1e18 scale)."""

    def __init__(self, address: str, steth: LocalStETH, ust: LocalToken, *, ust_per_steth: int, market: str):
        self.address = address
        self.steth = steth
        self.ust = ust
        self.ust_per_steth = ust_per_steth
        self.market = market

    def liquidate(self, ust_recipient: str) -> int:
        steth_amount = self.steth.balance_of(self.address)
        if steth_amount == 0:
            raise LocalLedgerError("nothing to liquidate")
        ust_amount = (steth_amount * self.ust_per_steth) // RATE_SCALE
        self.steth.transfer(self.address, self.market, steth_amount)
        self.ust.mint(self.address, ust_recipient, ust_amount)
        return ust_amount


class LocalInsuranceConnector:
    """Cumulative counter of stETH shares burnt as cover."""

    def __init__(self, address: str, steth: LocalStETH):
        self.address = address
        self.steth = steth
        self.shares_burnt = 0

    def total_shares_burnt(self) -> int:
        return self.shares_burnt

    def burn(self, owner: str, shares: int) -> None:
        self.steth.burn_shares(owner, shares)
        self.shares_burnt += shares
