"""
Pipeline Exceptions
===================

Exception hierarchy shared by the codecs, the XSLT step, the function engine
and the pipeline orchestrator.

Fatal errors (everything below ``TransformationError`` except
``FunctionApplicationError``) abort the current message and produce an error
child packet. ``FunctionApplicationError`` is isolated to a single function.
"""


class TransformationError(Exception):
    """Base class for all transformation pipeline errors."""
    pass


class ConfigurationError(TransformationError):
    """A route is missing something it needs (topic, stylesheet, XPath...)."""
    pass


class MalformedInputError(TransformationError):
    """Payload or metadata could not be decoded."""
    pass


class UnsupportedConversionError(MalformedInputError):
    """No codec exists for the requested content-type pair."""

    def __init__(self, from_type: str, to_type: str):
        super().__init__(f"Can not automatically convert type {from_type} into {to_type}")
        self.from_type = from_type
        self.to_type = to_type


class StylesheetError(TransformationError):
    """An XSLT stylesheet could not be loaded, compiled or applied."""
    pass


class DownstreamError(TransformationError):
    """The destination could not be reached or answered with a failure."""
    pass


class UnknownFunctionError(TransformationError):
    """A configured function name is not present in the registry."""

    def __init__(self, name: str):
        super().__init__(f"Unknown function '{name}'")
        self.name = name


class FunctionApplicationError(TransformationError):
    """A single function failed; the rest of the function list still runs."""
    pass


class InvalidStatusTransition(TransformationError):
    """A packet status was asked to move backwards or out of a terminal state."""
    pass


class PipelineCancelled(TransformationError):
    """Processing was cancelled between stages or before a blocking call."""
    pass


class RepositoryError(TransformationError):
    """The packet repository could not be reached or rejected an operation."""
    pass
