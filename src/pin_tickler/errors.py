class PinTicklerError(RuntimeError):
    pass


class FieldNotFound(PinTicklerError):
    """The target input field could not be located on the page."""


class InteractionDispatchFailure(PinTicklerError):
    """The host rejected a focus, write, event dispatch or click."""


class SubmissionFailure(PinTicklerError):
    """No submission option could be dispatched for an attempt."""


class PluginLoadError(PinTicklerError):
    pass


class PluginSignatureError(TypeError):
    pass
