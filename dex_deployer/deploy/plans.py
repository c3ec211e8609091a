"""
Deployment plans for the concentrated-liquidity exchange stack
"""

from .plan import DeploymentPlan, DeploymentStep, Ref

# bytes32 native currency label passed to the position descriptor
NATIVE_CURRENCY_LABEL = b"\x00" * 32

WETH = "WETH_ADDRESS"
FACTORY = "FACTORY_ADDRESS"
SWAP_ROUTER = "SWAP_ROUTER_ADDRESS"
NFT_DESCRIPTOR = "NFT_DESCRIPTOR_ADDRESS"
POSITION_DESCRIPTOR = "POSITION_DESCRIPTOR_ADDRESS"
POSITION_MANAGER = "POSITION_MANAGER_ADDRESS"

TETHER = "TETHER_ADDRESS"
USDC = "USDC_ADDRESS"
WRAPPED_BITCOIN = "WRAPPED_BITCOIN_ADDRESS"

# Registry key -> contract name of the test tokens
TOKEN_CONTRACTS = {
    TETHER: "Tether",
    USDC: "UsdCoin",
    WRAPPED_BITCOIN: "WrappedBitcoin",
}

DESCRIPTOR_REMEDIATION = (
    "Deploy NonfungibleTokenPositionDescriptor manually, linked against NFTDescriptor",
    "Update NonfungiblePositionManager with the correct descriptor address",
    "Check the artifact's linkReferences against the compiled NFTDescriptor library",
)


def core_plan() -> DeploymentPlan:
    """
    Core exchange contracts

    The position descriptor is the only non-critical step: if linking or
    deploying it fails, the position manager is deployed with the zero
    address as descriptor and the run ends DEGRADED.
    """
    return DeploymentPlan(
        name="deploy_core",
        steps=(
            DeploymentStep(WETH, "WETH9"),
            DeploymentStep(FACTORY, "UniswapV3Factory"),
            DeploymentStep(SWAP_ROUTER, "SwapRouter", args=(Ref(FACTORY), Ref(WETH))),
            DeploymentStep(NFT_DESCRIPTOR, "NFTDescriptor"),
            DeploymentStep(
                POSITION_DESCRIPTOR,
                "NonfungibleTokenPositionDescriptor",
                args=(Ref(WETH), NATIVE_CURRENCY_LABEL),
                libraries={"NFTDescriptor": NFT_DESCRIPTOR},
                critical=False,
                remediation=DESCRIPTOR_REMEDIATION,
            ),
            DeploymentStep(
                POSITION_MANAGER,
                "NonfungiblePositionManager",
                args=(Ref(FACTORY), Ref(WETH), Ref(POSITION_DESCRIPTOR)),
            ),
        ),
    )


def token_plan() -> DeploymentPlan:
    """Test tokens, submitted in sequence and confirmed as a batch"""
    return DeploymentPlan(
        name="deploy_tokens",
        steps=tuple(DeploymentStep(key, name) for key, name in TOKEN_CONTRACTS.items()),
        batch_confirmations=True,
    )
