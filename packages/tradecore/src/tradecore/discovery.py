"""Balance-driven discovery of the symbols worth synchronizing."""

from typing import Iterable, Mapping

from tradecore.types import Balance, Market


# Currencies treated as "home" quote currencies
FIAT_CURRENCIES = ("USDC", "USDT", "USD", "TWD", "EUR", "GBP")


def _has_holdings(balances: Mapping[str, Balance], currency: str) -> bool:
    balance = balances.get(currency)
    return balance is not None and balance.total > 0


def find_fiat_assets(balances: Mapping[str, Balance]) -> list[str]:
    """Return the fiat currencies the account actually holds."""
    return [c for c in FIAT_CURRENCIES if _has_holdings(balances, c)]


def find_possible_symbols(
    balances: Mapping[str, Balance],
    markets: Iterable[Market],
) -> set[str]:
    """Find symbols whose base asset is held and whose quote is a held fiat.

    The result is a set, so iteration order is unspecified. Callers that
    need a stable order must sort it.

    Args:
        balances: Currency -> Balance snapshot.
        markets: Markets listed by the exchange.

    Returns:
        Distinct symbols to synchronize.
    """
    fiat_assets = set(find_fiat_assets(balances))
    if not fiat_assets:
        return set()

    symbols = set()
    for market in markets:
        if market.quote_currency not in fiat_assets:
            continue
        if not _has_holdings(balances, market.base_currency):
            continue
        symbols.add(market.symbol)

    return symbols
