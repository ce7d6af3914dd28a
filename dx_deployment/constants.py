from pathlib import Path

import dx_deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(dx_deployment.__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"

DEFAULT_DEPLOYMENT_FILEPATH = CONSTRUCTOR_PARAMS_DIR / "dutchx.yml"

#
# Networks
#

LOCAL = "local"
RINKEBY = "rinkeby"
KOVAN = "kovan"
MAINNET = "mainnet"
CUSTOM = "custom"

SUPPORTED_NETWORKS = [LOCAL, RINKEBY, KOVAN, MAINNET, CUSTOM]
DEFAULT_NETWORK = LOCAL

# ape network choices (or provider URIs) per network
NETWORK_ENDPOINTS = {
    LOCAL: "ethereum:local:node",
    RINKEBY: "https://rinkeby.infura.io/",
    KOVAN: "https://kovan.infura.io/",
    MAINNET: "ethereum:mainnet:infura",
}

NETWORK_CHAIN_IDS = {
    LOCAL: 1337,
    RINKEBY: 4,
    KOVAN: 42,
    MAINNET: 1,
}

LOCAL_BLOCKCHAIN_ENVIRONMENTS = ["local"]

#
# Contracts
#

ZERO_ADDRESS = "0x" + "0" * 40

EXCHANGE_ARTIFACT = "Proxy"
EXCHANGE_CONTRACT_TYPE = "DutchExchange"

APPROVE_TOKENS_METHOD = "updateApprovalOfToken"
APPROVED_TOKENS_GETTER = "approvedTokens"
AUCTIONEER_GETTER = "auctioneer"

# tokens deployed by the test migrations and approved on rinkeby
TEST_TOKEN_ARTIFACTS = ["EtherToken", "TokenRDN", "TokenOMG"]
