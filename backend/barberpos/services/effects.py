"""
Post-commit side effects.

A sale or payment is committed first. The work that depends on it
(stock outflow, till ingress, commission entries) is described as an
explicit list of effects and run one by one afterwards. Each effect has
its own error boundary: a failure is rolled back, logged with the
document context, and the next effect still runs. Nothing here is ever
raised to the caller of the sale or payment.

Effects must be idempotent; reconciliation replays the same list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from flask import current_app

from ..extensions import db


@dataclass(frozen=True)
class PostCommitEffect:
    name: str
    apply: Callable[[], Any]


@dataclass
class EffectOutcome:
    name: str
    ok: bool
    result: Any = None
    error: str | None = None

    def to_dict(self) -> dict:
        data = {"name": self.name, "ok": self.ok}
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class EffectContext:
    tenant_id: int
    document: str
    extra: dict = field(default_factory=dict)

    def describe(self) -> str:
        parts = [f"tenant={self.tenant_id}", self.document]
        parts.extend(f"{k}={v}" for k, v in self.extra.items())
        return " ".join(parts)


def run_post_commit_effects(effects: list[PostCommitEffect], context: EffectContext) -> list[EffectOutcome]:
    outcomes = []
    for effect in effects:
        try:
            result = effect.apply()
            db.session.commit()
        except Exception as exc:
            db.session.rollback()
            current_app.logger.exception(
                "Side effect %s failed (%s); needs reconciliation", effect.name, context.describe()
            )
            outcomes.append(EffectOutcome(name=effect.name, ok=False, error=str(exc)))
            continue
        outcomes.append(EffectOutcome(name=effect.name, ok=True, result=result))

    failed = [o.name for o in outcomes if not o.ok]
    if failed:
        current_app.logger.warning(
            "%d of %d side effects failed for %s: %s",
            len(failed),
            len(outcomes),
            context.describe(),
            ", ".join(failed),
        )
    return outcomes
