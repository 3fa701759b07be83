"""
Decision Composer - folds per-line discount entries into the final decision.
"""
from typing import Iterable, Sequence

from .models import ApplicationStrategy, CartLine, DiscountDecision, DiscountEntry


def compose(
    entries: Iterable[DiscountEntry],
    strategy: ApplicationStrategy,
    lines: Sequence[CartLine] = (),
    warnings: Sequence[str] = (),
) -> DiscountDecision:
    """
    Assemble the decision.

    Entries are ordered by their line's position in the cart, then by rule
    precedence (priority, id). With no entries the result is the empty
    decision with strategy First.
    """
    entries = list(entries)
    if not entries:
        return DiscountDecision.empty(warnings=tuple(warnings))

    line_order = {line.id: position for position, line in enumerate(lines)}
    # Lines unknown to the cart keep their arrival order after known ones
    fallback = len(line_order)
    arrival = {}
    for entry in entries:
        arrival.setdefault(entry.line_id, fallback + len(arrival))

    def position(entry: DiscountEntry) -> tuple:
        return (line_order.get(entry.line_id, arrival[entry.line_id]), entry.priority, entry.rule_id)

    return DiscountDecision(
        discounts=tuple(sorted(entries, key=position)),
        strategy=strategy,
        warnings=tuple(warnings),
    )
