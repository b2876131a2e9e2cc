# neuroflow/errors.py - exception types raised by the core


class NeuroFlowError(Exception):
    """Base class for every error the core raises."""


class ShapeError(NeuroFlowError, ValueError):
    """A node's shape could not be computed."""


class ShapeParseError(ShapeError):
    """The Input node's shape text is malformed."""


class DimensionError(ShapeError):
    """A layer received a tensor of the wrong rank or invalid extents."""


class CodeGenerationError(NeuroFlowError, ValueError):
    pass


class ConfigError(NeuroFlowError, ValueError):
    pass
