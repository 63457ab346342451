"""Pure functions for game-end settlement.

No database access, no async. Takes the session's players and the final
chip counts and returns per-player results plus the payments that settle
everyone's balance.
"""

from collections.abc import Mapping, Sequence

from pokerledger.errors import BalanceMismatch, ValidationError
from pokerledger.models.player import Player
from pokerledger.models.settlement import (
    PlayerResult,
    SettlementResult,
    SettlementTransaction,
)

# Absorbs rounding from currency conversion upstream.
TOLERANCE = 0.01


def _validate_count(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Final chip count for {name} must be a whole number")
    if value < 0:
        raise ValidationError(f"Final chip count for {name} cannot be negative")
    return value


def compute_player_results(
    players: Sequence[Player],
    final_counts: Mapping[str, int],
) -> list[PlayerResult]:
    """Attach final chips and balance to every player, in input order.

    Players missing from ``final_counts`` are counted as holding 0 chips.
    """
    results: list[PlayerResult] = []
    for player in players:
        final_chips = _validate_count(player.name, final_counts.get(player.id, 0))
        results.append(
            PlayerResult(
                id=player.id,
                name=player.name,
                buy_in=player.buy_in,
                final_chips=final_chips,
                balance=final_chips - player.buy_in,
            )
        )
    return results


def check_conservation(results: Sequence[PlayerResult]) -> None:
    """Raise BalanceMismatch unless final chips add up to the net buy-ins."""
    total_final_chips = sum(r.final_chips for r in results)
    total_buy_in = sum(r.buy_in for r in results)
    if abs(total_final_chips - total_buy_in) > TOLERANCE:
        raise BalanceMismatch(total_final_chips, total_buy_in)


def compute_transactions(results: Sequence[PlayerResult]) -> list[SettlementTransaction]:
    """Greedy two-pointer matching of debtors against creditors.

    Debtors are taken most negative first and creditors largest first.
    Both sorts are stable, so ties keep their input order and the output is
    reproducible. This heuristic does not always reach the theoretical
    minimum number of payments.
    """
    debtors = sorted(
        ([r.name, float(r.balance)] for r in results if r.balance < 0),
        key=lambda d: d[1],
    )
    creditors = sorted(
        ([r.name, float(r.balance)] for r in results if r.balance > 0),
        key=lambda c: c[1],
        reverse=True,
    )

    transactions: list[SettlementTransaction] = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]
        amount = min(abs(debtor[1]), creditor[1])
        if amount > TOLERANCE:
            transactions.append(
                SettlementTransaction(
                    from_player=debtor[0],
                    to_player=creditor[0],
                    amount=round(amount, 2),
                )
            )
        debtor[1] += amount
        creditor[1] -= amount
        if abs(debtor[1]) < TOLERANCE:
            i += 1
        if abs(creditor[1]) < TOLERANCE:
            j += 1

    return transactions


def compute_settlement(
    players: Sequence[Player],
    final_counts: Mapping[str, int],
) -> SettlementResult:
    """Validate final chip counts and compute the settlement plan.

    Args:
        players: Session players; only ``id``, ``name`` and ``buy_in`` are read.
        final_counts: Final chip count per player id.

    Returns:
        A SettlementResult whose players are sorted by balance, descending.

    Raises:
        ValidationError: A chip count is negative or not a whole number.
        BalanceMismatch: Total final chips differ from total net buy-in.
    """
    results = compute_player_results(players, final_counts)
    check_conservation(results)
    transactions = compute_transactions(results)
    ranked = sorted(results, key=lambda r: r.balance, reverse=True)
    return SettlementResult(players=ranked, transactions=transactions)
