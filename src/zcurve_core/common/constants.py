# Fixed-point scales
WAD = 10 ** 18
BPS = 10_000
UINT256_MAX = 2 ** 256 - 1

# The contract prices coins in ticks of UNIT_SCALE base units (1e6 ticks per coin).
UNIT_SCALE = 10 ** 12

# Standard launch parameters
TOTAL_SUPPLY = 1_000_000_000 * WAD
SALE_CAP = 800_000_000 * WAD
QUAD_CAP = 200_000_000 * WAD

# Below this share of the sale cap the average price is used for valuation
AVERAGE_PRICE_THRESHOLD_BPS = 100

# Applied to graduated pools whose fee slot holds a hook instead of a fee
DEFAULT_SWAP_FEE_BPS = 30

# Target raises offered at launch, wei
PRESET_TARGET_RAISES = [
    WAD // 100,
    WAD // 10,
    WAD // 2,
    WAD,
    2 * WAD,
    5 * WAD,
    17 * WAD // 2,
]
