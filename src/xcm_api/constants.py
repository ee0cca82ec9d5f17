"""Constants and mappings for the XCM transfer submission engine."""

from enum import Enum

from .exceptions import ValidationError


class Chain(str, Enum):
    """Chains a transfer may originate from or be delivered to."""

    POLKADOT = "Polkadot"
    ASSET_HUB_POLKADOT = "AssetHubPolkadot"
    MOONBEAM = "Moonbeam"
    HYDRATION = "Hydration"
    ACALA = "Acala"
    ASTAR = "Astar"
    BIFROST_POLKADOT = "BifrostPolkadot"
    INTERLAY = "Interlay"

    @classmethod
    def parse(cls, value: "str | Chain") -> "Chain":
        """Resolve a chain from its canonical name, ignoring case and separators.

        Raises:
            ValidationError: If the value does not name a supported chain
        """
        if isinstance(value, cls):
            return value

        key = _chain_key(str(value))
        for chain in cls:
            if _chain_key(chain.value) == key:
                return chain
        raise ValidationError(f"Unsupported chain: {value}", field="chain", value=value)

    def __str__(self) -> str:
        return self.value


def _chain_key(value: str) -> str:
    return value.strip().lower().replace("-", "").replace("_", "").replace(" ", "")


# Public WebSocket endpoints, primary first.
DEFAULT_ENDPOINTS: dict[Chain, tuple[str, ...]] = {
    Chain.POLKADOT: (
        "wss://rpc.polkadot.io",
        "wss://polkadot-rpc.dwellir.com",
    ),
    Chain.ASSET_HUB_POLKADOT: (
        "wss://polkadot-asset-hub-rpc.polkadot.io",
        "wss://asset-hub-polkadot-rpc.dwellir.com",
    ),
    Chain.MOONBEAM: (
        "wss://wss.api.moonbeam.network",
        "wss://moonbeam.api.onfinality.io/public-ws",
        "wss://wss.api.moonbeam.network/ws",
    ),
    Chain.HYDRATION: (
        "wss://rpc.hydradx.cloud",
        "wss://hydration-rpc.publicnode.com",
    ),
    Chain.ACALA: (
        "wss://acala-rpc.aca-api.network",
        "wss://acala-rpc.dwellir.com",
    ),
    Chain.ASTAR: (
        "wss://rpc.astar.network",
        "wss://astar-rpc.dwellir.com",
    ),
    Chain.BIFROST_POLKADOT: (
        "wss://hk.p.bifrost-rpc.liebi.com/ws",
        "wss://bifrost-polkadot-rpc.dwellir.com",
    ),
    Chain.INTERLAY: ("wss://api.interlay.io/parachain",),
}

# Environment variable overriding the primary endpoint of each chain's pool.
WS_URL_ENV_KEYS: dict[Chain, str] = {
    Chain.POLKADOT: "POLKADOT_WS_URL",
    Chain.ASSET_HUB_POLKADOT: "ASSET_HUB_POLKADOT_WS_URL",
    Chain.MOONBEAM: "MOONBEAM_WS_URL",
    Chain.HYDRATION: "HYDRATION_WS_URL",
    Chain.ACALA: "ACALA_WS_URL",
    Chain.ASTAR: "ASTAR_WS_URL",
    Chain.BIFROST_POLKADOT: "BIFROST_POLKADOT_WS_URL",
    Chain.INTERLAY: "INTERLAY_WS_URL",
}

DEFAULT_SOURCE_CHAIN = Chain.MOONBEAM
DEFAULT_DESTINATION_CHAIN = Chain.HYDRATION
DEFAULT_MOONBEAM_RPC_URL = "https://rpc.api.moonbeam.network"
DEFAULT_XCM_API_URL = "https://api.lightspell.xyz/v4"

DEFAULT_AMOUNT = "0.1"
DEFAULT_ASSET = "DOT"
DEFAULT_MAX_ATTEMPTS = 30
DEFAULT_BACKOFF_SECONDS = 4.0
DEFAULT_FAILURE_HISTORY = 3
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_RECEIPT_TIMEOUT = 120.0

# Local guess used when the asset registry cannot resolve a symbol.
FALLBACK_DECIMALS = {
    "GLMR": 18,
    "DOT": 10,
}
DEFAULT_FALLBACK_DECIMALS = 12

# Origins the bundled EVM signer can submit from.
EVM_CHAINS = frozenset({Chain.MOONBEAM})
