"""Constants and token metadata for swap orchestration."""

from __future__ import annotations

from typing import Dict, FrozenSet

# Placeholder the 0x API uses for the chain's native asset.
NATIVE_TOKEN_ADDRESS = '0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee'
ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'
NATIVE_ADDRESSES: FrozenSet[str] = frozenset({NATIVE_TOKEN_ADDRESS, ZERO_ADDRESS})
NATIVE_DECIMALS = 18

# Maximum uint256 for unlimited approval
MAX_UINT256 = 2**256 - 1

# Trusted token registry keyed by chain ID → token symbol → metadata.
# Addresses intentionally lowercased to simplify comparisons.
TOKEN_REGISTRY: Dict[int, Dict[str, Dict[str, object]]] = {
    8453: {  # Base mainnet
        'ETH': {
            'symbol': 'ETH',
            'name': 'Ether',
            'address': NATIVE_TOKEN_ADDRESS,
            'decimals': NATIVE_DECIMALS,
            'is_native': True,
            'aliases': {'eth', 'ether', 'ethereum', 'native'},
        },
        'WETH': {
            'symbol': 'WETH',
            'name': 'Wrapped Ether',
            'address': '0x4200000000000000000000000000000000000006',
            'decimals': 18,
            'is_native': False,
            'aliases': {'weth', 'wrapped eth', 'wrapped ether'},
        },
        'USDC': {
            'symbol': 'USDC',
            'name': 'USD Coin',
            'address': '0x833589fcd6edb6e08f4c7c32d4f71b54bda02913',
            'decimals': 6,
            'is_native': False,
            'aliases': {'usdc', 'usd coin'},
        },
        'USDBC': {
            'symbol': 'USDbC',
            'name': 'USD Base Coin',
            'address': '0xd9aaec86b65d86f6a7b5b1b0c42ffa531710b6ca',
            'decimals': 6,
            'is_native': False,
            'aliases': {'usdbc', 'bridged usdc'},
        },
        'USDT': {
            'symbol': 'USDT',
            'name': 'Tether USD',
            'address': '0xfde4c96c8593536e31f229ea8f37b2ada2699bb2',
            'decimals': 6,
            'is_native': False,
            'aliases': {'usdt', 'tether'},
        },
        'DAI': {
            'symbol': 'DAI',
            'name': 'Dai Stablecoin',
            'address': '0x50c5725949a6f0c72e6c4a641f24049a917db0cb',
            'decimals': 18,
            'is_native': False,
            'aliases': {'dai'},
        },
        'CBETH': {
            'symbol': 'cbETH',
            'name': 'Coinbase Wrapped Staked ETH',
            'address': '0x2ae3f1ec7f1f5012cfeab0185bfc7aa3cf0dec22',
            'decimals': 18,
            'is_native': False,
            'aliases': {'cbeth', 'coinbase eth'},
        },
        'CBBTC': {
            'symbol': 'cbBTC',
            'name': 'Coinbase Wrapped BTC',
            'address': '0xcbb7c0000ab88b473b1f5afd9ef808440eed33bf',
            'decimals': 8,
            'is_native': False,
            'aliases': {'cbbtc', 'btc', 'bitcoin', 'wrapped btc'},
        },
        'AERO': {
            'symbol': 'AERO',
            'name': 'Aerodrome',
            'address': '0x940181a94a35a4569e4529a3cdfb74e38fd98631',
            'decimals': 18,
            'is_native': False,
            'aliases': {'aero', 'aerodrome'},
        },
    },
}


def build_alias_map(chain_id: int) -> Dict[str, str]:
    """Map every lowercase alias/symbol to its registry key for ``chain_id``."""

    alias_map: Dict[str, str] = {}
    for key, meta in TOKEN_REGISTRY.get(chain_id, {}).items():
        alias_map[key.lower()] = key
        alias_map[str(meta['symbol']).lower()] = key
        for alias in meta.get('aliases', set()):  # type: ignore[union-attr]
            alias_map[str(alias).lower()] = key
    return alias_map


def build_address_map(chain_id: int) -> Dict[str, str]:
    """Map lowercase contract address → registry key for ``chain_id``."""

    return {
        str(meta['address']).lower(): key
        for key, meta in TOKEN_REGISTRY.get(chain_id, {}).items()
    }
