"""
Reconciliation of a snippet's units against the original's units.

The decision logic is the same for every notation; mergers only provide the
unit mutation hooks (see NotationMerger.apply_*).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..commands import CommandSet, split_params
from ..config import Placement
from .base import DirectiveError, NotationMerger, Unit, UnitOrigin, UnitTable

logger = logging.getLogger(__name__)

# CommandSet extension field -> directive name, for warnings
EXTENSION_DIRECTIVES = {"is_async": "async", "is_unsafe": "unsafe", "return_type": "returns"}


@dataclass
class Reconciliation:
    """Merged unit table plus the warnings collected on the way."""

    table: UnitTable
    warnings: list[str] = field(default_factory=list)


class Reconciler:
    """Apply snippet units to an original unit table.

    For each snippet unit, in snippet order:
    - @delete removes the same-named unit (and wins over @rename)
    - otherwise a clone of the snippet unit replaces the same-named unit,
      or is added as a new unit, after its directives are applied

    With Placement.MOVE_TO_END a replaced unit is removed and re-inserted at
    the end of the table; with Placement.IN_PLACE it keeps its slot. Units
    the snippet does not mention keep their position.
    """

    def __init__(self, merger: NotationMerger, placement: Placement | None = None):
        self.merger = merger
        self.placement = placement or merger.placement
        self.strict = merger.config.strict_directives

    def reconcile(self, original: UnitTable, snippet: UnitTable, commands: Mapping[str, CommandSet]) -> Reconciliation:
        result = UnitTable(original)
        warnings: list[str] = []

        for name, snippet_unit in snippet.items():
            if snippet_unit.anonymous:
                self._warn(warnings, f"UnitNameUnresolvable: skipped snippet {snippet_unit.kind} without a name")
                continue

            unit_commands = commands.get(name) or CommandSet()
            if unit_commands.delete:
                if result.pop(name, None) is None:
                    logger.debug("Delete of '%s' is a no-op: no such unit", name)
                if unit_commands.rename:
                    logger.debug("Rename of '%s' skipped: the unit is deleted", name)
                continue

            base = result.get(name)
            merged = self.merger.clone_unit(snippet_unit)
            merged.origin = UnitOrigin.SNIPPET
            if base is not None:
                merged.replaces = base if base.origin is UnitOrigin.ORIGINAL else base.replaces

            self._apply_commands(merged, unit_commands, warnings)

            if base is not None and self.placement is Placement.IN_PLACE:
                result.put_in_place(name, merged.name, merged)
            else:
                result.pop(name, None)
                result.put_last(merged.name, merged)
            logger.debug("%s unit '%s' as '%s'", "Replaced" if base is not None else "Added", name, merged.name)

        return Reconciliation(result, warnings)

    def _apply_commands(self, unit: Unit, commands: CommandSet, warnings: list[str]) -> None:
        # rename first so that a private marker applies to the final name
        if commands.rename is not None:
            self._check(self.merger.apply_rename(unit, commands.rename), "rename", commands.rename, unit, warnings)
        if commands.access is not None:
            self._check(self.merger.apply_access(unit, commands.access), "access", commands.access, unit, warnings)
        if commands.decorators:
            value = ", ".join(commands.decorators)
            self._check(self.merger.apply_decorators(unit, list(commands.decorators)), "decorator", value, unit, warnings)
        if commands.params is not None:
            self._check(self.merger.apply_parameters(unit, split_params(commands.params)), "params", commands.params, unit, warnings)
        for name in self.merger.apply_extensions(unit, commands):
            self._check(False, EXTENSION_DIRECTIVES[name], getattr(commands, name), unit, warnings)

    def _check(self, applied: bool, directive: str, value: object, unit: Unit, warnings: list[str]) -> None:
        if applied:
            return
        message = f"DirectiveIgnored: @{directive} {value!r} on {unit.kind} '{unit.name}'"
        if self.strict:
            raise DirectiveError(message)
        self._warn(warnings, message)

    def _warn(self, warnings: list[str], message: str) -> None:
        logger.debug(message)
        warnings.append(message)
