"""Exceptions raised by the consensus engine."""


class ConsensusError(Exception):
    """Base class for consensus engine failures."""


class EmptyInputError(ConsensusError):
    """Raised when aggregation is asked to combine zero model forecasts."""
