"""
Result envelope shared by every calculator.

A calculation returns its typed result wrapped with the methodology
label, the assumptions it ran under, any warnings and timing metadata.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from real_options.utils.constants import PACKAGE_VERSION, PRECISION_LABEL

T = TypeVar("T")


@dataclass
class ComputationMetadata:
    """
    Metadata attached to every computation.

    Attributes:
        version: Package version that produced the result
        computation_time_us: Wall-clock time of the calculation in microseconds
        precision: Arithmetic used by the calculation
    """

    version: str
    computation_time_us: int
    precision: str = PRECISION_LABEL


@dataclass
class ComputationOutput(Generic[T]):
    """
    Standard output envelope.

    Attributes:
        result: Calculator-specific result dataclass
        methodology: Human-readable model label
        assumptions: Inputs and model choices the result depends on
        warnings: Degraded or noteworthy conditions, in order of detection
        metadata: Version, timing and precision
    """

    result: T
    methodology: str
    assumptions: dict[str, Any]
    warnings: list[str] = field(default_factory=list)
    metadata: ComputationMetadata = field(
        default_factory=lambda: ComputationMetadata(PACKAGE_VERSION, 0)
    )


def with_metadata(
    methodology: str,
    assumptions: dict[str, Any],
    warnings: list[str],
    elapsed_us: int,
    result: T,
) -> ComputationOutput[T]:
    """Wrap ``result`` in a ``ComputationOutput`` stamped with the package version."""
    return ComputationOutput(
        result=result,
        methodology=methodology,
        assumptions=dict(assumptions),
        warnings=list(warnings),
        metadata=ComputationMetadata(
            version=PACKAGE_VERSION,
            computation_time_us=int(elapsed_us),
        ),
    )
