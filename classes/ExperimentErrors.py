"""
ExperimentErrors: failure taxonomy for CDoS-WiFi runs

Configuration and resource errors are raised before the simulator executes
any event of a run. Engine errors wrap whatever ns-3 raised while the run was
being configured or executed.
"""


class ExperimentError(Exception):
    """Base class for every failure surfaced by an experiment run"""


class ConfigurationError(ExperimentError):
    """Invalid experiment parameters (utilization, station count, lengths, times)"""


class ResourceError(ExperimentError):
    """The run output location could not be created or written"""


class EngineError(ExperimentError):
    """The simulation engine rejected the scenario or failed while running it"""
