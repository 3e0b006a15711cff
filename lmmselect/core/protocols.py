"""
Core protocols for lmmselect.

Structural interfaces for data containers and model backends. Anything
with a ``name`` and a ``solve(design)`` returning a Result can stand in
for the statsmodels backends, which is how the tests simulate failing
optimizers.
"""

from typing import Protocol, TypeVar, Any, runtime_checkable

# Type variables for generic payloads
P = TypeVar('P', covariant=True)  # Parameter payload type
D = TypeVar('D', contravariant=True)  # Design type


@runtime_checkable
class DataSource(Protocol):
    """
    Minimal protocol for any tabular data container.

    Dataset implements this; tests may pass lightweight stand-ins.
    """

    @property
    def n_observations(self) -> int:
        """Number of rows."""
        ...

    @property
    def metadata(self) -> dict[str, Any]:
        """Provenance metadata."""
        ...

    def keys(self) -> frozenset[str]:
        """Column names."""
        ...


@runtime_checkable
class ModelBackend(Protocol[D, P]):
    """
    Protocol for model-fitting backends.

    A backend takes a validated design (formula + dataset + estimation mode)
    and returns a Result envelope whose payload is library-agnostic. All
    library-specific objects stay inside the backend.

    Type Parameters:
        D: The design type this backend accepts
        P: The parameter payload type this backend produces
    """

    @property
    def name(self) -> str:
        """
        Backend identifier.

        Convention: '{library}_{model}'
        Examples: 'statsmodels_ols', 'statsmodels_mixedlm'
        """
        ...

    def solve(self, design: D) -> 'Result[P]':
        """
        Fit the model described by the design.

        Raises:
            NonConvergenceError: If the optimizer fails to converge or the
                numerics break down
            ValidationError: If the design is invalid for this backend
        """
        ...
