"""
Exceptions raised by the estimate engine and its collaborators.

Validation of user input (quantities, prices) never raises: invalid values are
ignored. Everything here describes a failure the caller has to present.
"""


class EstimatorError(Exception):
    """Base class for estimate engine errors."""


class EstimateNotFound(EstimatorError):
    """The persistence collaborator has no estimate with this identifier."""

    def __init__(self, estimate_id):
        self.estimate_id = estimate_id
        super().__init__(f"Estimate {estimate_id} not found")


class PersistenceError(EstimatorError):
    """Loading or saving through the persistence collaborator failed."""


class CatalogLookupError(EstimatorError):
    """Material templates for the requested works could not be fetched."""


class PriceCommitError(EstimatorError):
    """A revised base price could not be written back to the work catalog."""


class InvalidCoefficientError(EstimatorError, ValueError):
    """Coefficient input is not a number or lies outside the accepted range."""
