from decimal import Decimal

from web3 import Web3


def format_units(value: int, decimals: int) -> str:
    """
    Render an integer amount of base units as a decimal string.

    >>> format_units(1500000, 6)
    '1.5'
    """
    amount = Decimal(value).scaleb(-decimals)
    text = format(amount, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def format_ether(wei: int) -> str:
    return format_units(wei, 18)


def wei_to_gwei(wei: int) -> float:
    return float(Web3.from_wei(wei, "gwei"))
