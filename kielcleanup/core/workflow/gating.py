from __future__ import annotations

import logging
from typing import Iterable, List, Protocol

log = logging.getLogger("kielcleanup.workflow")


class StepStatusStore(Protocol):
    """Workflow step bookkeeping of the host."""

    def disable_step(self, name: str) -> int:
        ...


def disable_steps_if_found(images_found: bool, step_names: Iterable[str], store: StepStatusStore) -> List[str]:
    """Disable the configured steps once images were imported.

    No decision logic beyond the flag: when `images_found` is false nothing
    happens, otherwise `disable_step` is called once per name.

    Returns: the step names passed to the store.
    """

    if not images_found:
        return []

    names = [n for n in step_names if n]
    for name in names:
        changed = store.disable_step(name)
        log.info("disabled step %r (%d match(es))", name, changed)
    return names
