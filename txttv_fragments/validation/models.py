"""Result types produced by the four validation layers."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

WELL_FORMED = "well-formedness"
SCHEMA = "schema"
SECURITY = "security"
STRUCTURE = "structure"
LAYER_ORDER = (WELL_FORMED, SCHEMA, SECURITY, STRUCTURE)


@dc.dataclass(frozen=True, slots=True)
class LayerResult:
    """Outcome of one validation layer.

    Errors are blocking and set ``passed`` to ``False``; warnings never do.
    """

    name: str
    passed: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @classmethod
    def from_messages(
        cls,
        name: str,
        errors: cabc.Iterable[str] = (),
        warnings: cabc.Iterable[str] = (),
    ) -> LayerResult:
        """Build a result whose ``passed`` flag follows from ``errors``."""
        error_tuple = tuple(errors)
        return cls(
            name=name,
            passed=not error_tuple,
            errors=error_tuple,
            warnings=tuple(warnings),
        )

    @property
    def status(self) -> str:
        """Return ``fail``, ``warn``, or ``pass`` for reporting."""
        if not self.passed:
            return "fail"
        if self.warnings:
            return "warn"
        return "pass"


@dc.dataclass(frozen=True, slots=True)
class ValidationReport:
    """Aggregated outcome of every layer for one fragment."""

    layers: tuple[LayerResult, ...]
    page_number: int | None = None

    @property
    def valid(self) -> bool:
        """Return ``True`` when every layer passed."""
        return all(layer.passed for layer in self.layers)

    @property
    def errors(self) -> list[str]:
        """Return blocking messages prefixed with their layer name."""
        return [f"{layer.name}: {msg}" for layer in self.layers for msg in layer.errors]

    @property
    def warnings(self) -> list[str]:
        """Return advisory messages prefixed with their layer name."""
        return [
            f"{layer.name}: {msg}" for layer in self.layers for msg in layer.warnings
        ]

    def layer(self, name: str) -> LayerResult:
        """Return the result for the layer called ``name``."""
        for result in self.layers:
            if result.name == name:
                return result
        msg = f"Unknown validation layer '{name}'."
        raise KeyError(msg)

    def to_dict(self) -> dict[str, typ.Any]:
        return {
            "page": self.page_number,
            "valid": self.valid,
            "layers": [
                {
                    "name": layer.name,
                    "status": layer.status,
                    "errors": list(layer.errors),
                    "warnings": list(layer.warnings),
                }
                for layer in self.layers
            ],
        }


def reduce_layers(
    results: cabc.Iterable[LayerResult], page_number: int | None = None
) -> ValidationReport:
    """Combine layer results into a report ordered by :data:`LAYER_ORDER`."""
    collected = list(results)
    rank = {name: index for index, name in enumerate(LAYER_ORDER)}
    collected.sort(key=lambda layer: rank.get(layer.name, len(rank)))
    return ValidationReport(layers=tuple(collected), page_number=page_number)


__all__ = [
    "LAYER_ORDER",
    "SCHEMA",
    "SECURITY",
    "STRUCTURE",
    "WELL_FORMED",
    "LayerResult",
    "ValidationReport",
    "reduce_layers",
]
