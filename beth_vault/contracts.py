"""Contract interaction functions."""

from typing import TYPE_CHECKING, Any

from beth_vault.constants import (
    ANCHOR_VAULT_MIN_ABI,
    ERC20_MIN_ABI,
    INSURANCE_CONNECTOR_MIN_ABI,
    LIDO_STETH_MIN_ABI,
)

if TYPE_CHECKING:
    from web3 import Web3  # pragma: no cover


def vault_contract(w3: "Web3", vault_address: str) -> Any:
    return w3.eth.contract(address=w3.to_checksum_address(vault_address), abi=ANCHOR_VAULT_MIN_ABI)


def steth_contract(w3: "Web3", address: str) -> Any:
    return w3.eth.contract(address=w3.to_checksum_address(address), abi=LIDO_STETH_MIN_ABI)


def erc20_contract(w3: "Web3", address: str) -> Any:
    return w3.eth.contract(address=w3.to_checksum_address(address), abi=ERC20_MIN_ABI)


def insurance_contract(w3: "Web3", address: str) -> Any:
    return w3.eth.contract(address=w3.to_checksum_address(address), abi=INSURANCE_CONNECTOR_MIN_ABI)

