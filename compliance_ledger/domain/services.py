"""Domain services implementing the pool redistribution rules."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Context, Decimal
from typing import Mapping, Sequence

from .errors import PoolValidationError
from .models import PoolMember

ZERO = Decimal("0")


@dataclass
class _Allocation:
    ship_id: str
    cb_before: Decimal
    cb_after: Decimal


class PoolRedistributor:
    """Moves surplus from compliant ships to deficit ships inside one pool.

    The allocation is a single greedy pass: members are ordered by their
    starting balance, largest surplus first, and each donor covers the largest
    remaining deficits (found at the tail of the ordering) until it runs dry.
    All arithmetic runs in ``decimal_context``, never the thread's ambient one.
    """

    def __init__(self, decimal_context: Context | None = None) -> None:
        self._ctx = decimal_context or Context(prec=28)

    def redistribute(self, balances: Mapping[str, Decimal]) -> Sequence[PoolMember]:
        if not balances:
            raise PoolValidationError("Cannot create a pool without ships")

        members = [_Allocation(ship_id, cb, cb) for ship_id, cb in balances.items()]

        total = ZERO
        for member in members:
            total = self._ctx.add(total, member.cb_before)
        if total < ZERO:
            raise PoolValidationError(f"Pool validation failed: sum of CB ({total}) must be >= 0")

        # sorted() is stable, so ties keep their input order
        members = sorted(members, key=lambda m: m.cb_before, reverse=True)
        self._transfer(members)
        self._validate(members)

        return tuple(PoolMember(m.ship_id, m.cb_before, m.cb_after) for m in members)

    def _transfer(self, members: list[_Allocation]) -> None:
        ctx = self._ctx
        for i, donor in enumerate(members):
            if donor.cb_after <= ZERO:
                continue
            for j in range(len(members) - 1, i, -1):
                receiver = members[j]
                if receiver.cb_after >= ZERO:
                    break
                amount = min(ctx.minus(receiver.cb_after), donor.cb_after)
                donor.cb_after = ctx.subtract(donor.cb_after, amount)
                receiver.cb_after = ctx.add(receiver.cb_after, amount)
                if donor.cb_after <= ZERO:
                    break

    @staticmethod
    def _validate(members: Sequence[_Allocation]) -> None:
        for member in members:
            if member.cb_before < ZERO and member.cb_after < member.cb_before:
                raise PoolValidationError(
                    f"Deficit ship {member.ship_id} would exit worse", ship_id=member.ship_id
                )
            if member.cb_before > ZERO and member.cb_after < ZERO:
                raise PoolValidationError(
                    f"Surplus ship {member.ship_id} cannot exit negative", ship_id=member.ship_id
                )
