"""Asset tables and numeric helpers shared across the vault.


- Each asset maps to a storage tag (used in public stake ids) and a network label.
- to_principal / to_fiat quantize amounts to satoshi and cent precision.
"""

from decimal import Decimal, ROUND_HALF_UP

TBTC = "tBTC"
WBTC = "wBTC"

ASSET_TAGS = {TBTC: "btc", WBTC: "wbtc"}
TAG_ASSETS = {tag: asset for asset, tag in ASSET_TAGS.items()}

ASSET_NETWORKS = {TBTC: "Bitcoin Testnet", WBTC: "EVM Testnet"}

MS_PER_DAY = 86_400_000

PRINCIPAL_PLACES = Decimal("0.00000001")
FIAT_PLACES = Decimal("0.01")

# Stake.amount is max_digits=24 with 8 decimal places
MAX_AMOUNT_INTEGER_DIGITS = 16

# Share of principal returned on an early exit
EARLY_EXIT_SHARE = Decimal("0.5")


def to_principal(amount) -> Decimal:
    """
    Quantize an asset amount to 8 decimal places (1 satoshi), half away from zero
    """
    return Decimal(str(amount)).quantize(PRINCIPAL_PLACES, rounding=ROUND_HALF_UP)


def to_fiat(amount) -> Decimal:
    """
    Quantize a reference-currency amount to 2 decimal places, half away from zero
    """
    return Decimal(str(amount)).quantize(FIAT_PLACES, rounding=ROUND_HALF_UP)
