"""Well-known networks and their token presets."""

from enum import Enum


class NetworkName(str, Enum):
    """Networks with a public RPC endpoint preset."""

    POLKADOT = "polkadot"
    KUSAMA = "kusama"
    WESTEND = "westend"
    ROCOCO = "rococo"


DEFAULT_NETWORK = NetworkName.POLKADOT

WELL_KNOWN_ENDPOINTS: dict[NetworkName, str] = {
    NetworkName.POLKADOT: "wss://rpc.polkadot.io",
    NetworkName.KUSAMA: "wss://kusama-rpc.polkadot.io",
    NetworkName.WESTEND: "wss://westend-rpc.polkadot.io",
    NetworkName.ROCOCO: "wss://rococo-rpc.polkadot.io",
}

DECIMALS: dict[NetworkName, int] = {
    NetworkName.POLKADOT: 10,
    NetworkName.KUSAMA: 12,
    NetworkName.WESTEND: 12,
    NetworkName.ROCOCO: 12,
}

UNITS: dict[NetworkName, str] = {
    NetworkName.POLKADOT: "DOT",
    NetworkName.KUSAMA: "KSM",
    NetworkName.WESTEND: "WND",
    NetworkName.ROCOCO: "ROC",
}

SS58_FORMAT: dict[NetworkName, int] = {
    NetworkName.POLKADOT: 0,
    NetworkName.KUSAMA: 2,
    NetworkName.WESTEND: 42,
    NetworkName.ROCOCO: 42,
}


def is_valid_network(name: str) -> bool:
    return name in {n.value for n in NetworkName}
