"""Read-only view of a deployed AnchorVault through web3.

The adapters here satisfy the read side of the collaborator interfaces, so an
`AnchorVault` built by `load_onchain_vault` evaluates the same peg and harvest
logic against live chain data. State-changing operations are refused.
"""

import sys
from typing import TYPE_CHECKING, Any

from beth_vault.constants import ZERO_ADDRESS
from beth_vault.contracts import erc20_contract, insurance_contract, steth_contract, vault_contract
from beth_vault.formatters import as_int, normalize_hex_str, same_address
from beth_vault.models import ConfigRegistry, PegState, RefundLedger, VaultState, VaultStorage
from beth_vault.vault import AnchorVault

if TYPE_CHECKING:
    from web3 import Web3  # pragma: no cover


class ReadOnlyChainError(RuntimeError):
    pass


class Web3StETH:
    def __init__(self, contract: Any, *, block_identifier: int | str = "latest"):
        self.contract = contract
        self.block_identifier = block_identifier

    def _call(self, fn) -> int:
        return as_int(fn.call(block_identifier=self.block_identifier))

    def total_supply(self) -> int:
        return self._call(self.contract.functions.totalSupply())

    def get_total_shares(self) -> int:
        return self._call(self.contract.functions.getTotalShares())

    def shares_of(self, owner: str) -> int:
        return self._call(self.contract.functions.sharesOf(owner))

    def get_pooled_eth_by_shares(self, shares: int) -> int:
        return self._call(self.contract.functions.getPooledEthByShares(shares))

    def balance_of(self, owner: str) -> int:
        return self._call(self.contract.functions.balanceOf(owner))


class Web3Token:
    def __init__(self, contract: Any, *, block_identifier: int | str = "latest"):
        self.contract = contract
        self.block_identifier = block_identifier

    def total_supply(self) -> int:
        return as_int(self.contract.functions.totalSupply().call(block_identifier=self.block_identifier))

    def balance_of(self, owner: str) -> int:
        return as_int(self.contract.functions.balanceOf(owner).call(block_identifier=self.block_identifier))


class Web3InsuranceConnector:
    def __init__(self, contract: Any, *, block_identifier: int | str = "latest"):
        self.contract = contract
        self.block_identifier = block_identifier

    def total_shares_burnt(self) -> int:
        return as_int(self.contract.functions.total_shares_burnt().call(block_identifier=self.block_identifier))


class ChainHost:
    """Clock pinned to a block; there is no way to apply state changes."""

    def __init__(self, timestamp: int):
        self.timestamp = timestamp

    def now(self) -> int:
        return self.timestamp

    def atomic(self):
        raise ReadOnlyChainError("on-chain vault view is read-only")


def _read_getter(vault: Any, name: str, default: Any, *, block_identifier: int | str) -> Any:
    try:
        return getattr(vault.functions, name)().call(block_identifier=block_identifier)
    except Exception as ex:  # pylint: disable=broad-exception-caught
        # Older vault versions lack some getters; fall back to the field default.
        print(f"⚠️  {name}() failed: {ex}", file=sys.stderr)
        return default


def read_vault_storage(w3: "Web3", vault_address: str, *, block_identifier: int | str = "latest") -> VaultStorage:
    """Rebuild the vault record from the deployed vault's public getters."""
    vault = vault_contract(w3, vault_address)

    def read(name: str, default: Any) -> Any:
        return _read_getter(vault, name, default, block_identifier=block_identifier)

    state = VaultState(
        admin=read("admin", ZERO_ADDRESS),
        emergency_admin=read("emergency_admin", ZERO_ADDRESS),
        operations_allowed=bool(read("operations_allowed", True)),
        version=as_int(read("version", 0)),
        steth_token=read("steth_token", ZERO_ADDRESS),
        beth_token=read("beth_token", ZERO_ADDRESS),
    )
    config = ConfigRegistry(
        bridge_connector=read("bridge_connector", ZERO_ADDRESS),
        rewards_liquidator=read("rewards_liquidator", ZERO_ADDRESS),
        insurance_connector=read("insurance_connector", ZERO_ADDRESS),
        anchor_rewards_distributor=normalize_hex_str(read("anchor_rewards_distributor", b"\x00" * 32)),
        liquidations_admin=read("liquidations_admin", ZERO_ADDRESS),
        no_liquidation_interval=as_int(read("no_liquidation_interval", 0)),
        restricted_liquidation_interval=as_int(read("restricted_liquidation_interval", 0)),
    )
    peg = PegState(
        last_liquidation_time=as_int(read("last_liquidation_time", 0)),
        last_liquidation_share_price=as_int(read("last_liquidation_share_price", 0)),
        last_liquidation_shares_burnt=as_int(read("last_liquidation_shares_burnt", 0)),
    )
    refunds = RefundLedger(total_beth_refunded=as_int(read("total_beth_refunded", 0)))
    return VaultStorage(state=state, config=config, peg=peg, refunds=refunds)


def load_onchain_vault(w3: "Web3", vault_address: str, *, block_identifier: int | str = "latest") -> AnchorVault:
    """Build a read-only AnchorVault backed by on-chain state at `block_identifier`."""
    storage = read_vault_storage(w3, vault_address, block_identifier=block_identifier)
    block = w3.eth.get_block(block_identifier)

    state = storage.state
    config = storage.config

    def resolve(address: str) -> Any:
        if same_address(address, state.steth_token):
            return Web3StETH(steth_contract(w3, address), block_identifier=block_identifier)
        if same_address(address, state.beth_token):
            return Web3Token(erc20_contract(w3, address), block_identifier=block_identifier)
        if same_address(address, config.insurance_connector):
            return Web3InsuranceConnector(insurance_contract(w3, address), block_identifier=block_identifier)
        raise ReadOnlyChainError(f"no read-only adapter for {address}")

    return AnchorVault(vault_address, ChainHost(int(block["timestamp"])), resolve, storage=storage)
