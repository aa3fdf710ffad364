import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class Effect:
    name: str
    fn: Callable[[], Any]
    context: dict = field(default_factory=dict)


class PostCommitEffects:
    """Best-effort work queued during a mutation and run once it has committed.

    A failing effect is logged with its context and never interrupts the
    remaining effects or the caller.
    """

    def __init__(self) -> None:
        self._effects: list[Effect] = []

    def add(self, name: str, fn: Callable[[], Any], **context) -> None:
        self._effects.append(Effect(name=name, fn=fn, context=context))

    def run(self) -> list[Effect]:
        failed = []
        effects, self._effects = self._effects, []
        for effect in effects:
            try:
                effect.fn()
            except Exception:
                logger.warning(
                    "Post-commit effect failed",
                    extra={"effect": effect.name, **effect.context},
                    exc_info=True,
                )
                failed.append(effect)
        return failed
