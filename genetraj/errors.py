# -*- coding: utf-8 -*-


class GeneTrajectoryError(Exception):
    """
    Base class for errors raised by the gene trajectory pipeline.

    Parameters
    ----------
    message : str
        What was violated, and by which input.
    stage : str, optional
        The pipeline stage that raised the error, e.g. 'graph_distance'.
    """

    def __init__(self, message, stage=None):
        self.stage = stage
        self.message = message
        super().__init__('[{}] {}'.format(stage, message) if stage is not None else message)


class ParameterError(GeneTrajectoryError, ValueError):
    pass


class InvalidClusterCount(ParameterError):
    pass


class InvalidDistribution(GeneTrajectoryError, ValueError):
    pass


class ConnectivityError(GeneTrajectoryError, RuntimeError):
    """
    Raised when a graph fractures into more components than tolerated, or when
    unreachable (infinite) distances would be fed to a downstream stage.
    """

    def __init__(self, message, stage=None, n_components=None, n_unreachable_pairs=None):
        self.n_components = n_components
        self.n_unreachable_pairs = n_unreachable_pairs
        super().__init__(message, stage=stage)


class DegenerateSpectrumError(GeneTrajectoryError, RuntimeError):
    pass


class ConvergenceFailure(GeneTrajectoryError, RuntimeWarning):
    """Per-pair transport solver failure. Recorded and logged, never raised by the pipeline."""
    pass


class ComputationCancelled(GeneTrajectoryError, RuntimeError):
    pass
