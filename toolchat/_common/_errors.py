__all__ = [
    "ToolChatError",
    "TransportError",
    "FunctionNotFoundError",
    "InvocationError",
    "MalformedArgumentsError",
    "DuplicateRegistrationError",
    "PluginLoadError",
]


class ToolChatError(Exception):
    """
    Base class for every error raised by toolchat.
    """

    pass


class TransportError(ToolChatError):
    """
    The completion call itself failed (network, auth, rate limit, ...).
    Not retried. It propagates out of the round that triggered it.
    """

    pass


class FunctionNotFoundError(ToolChatError):
    """
    The model asked for a (namespace, name) pair that isn't registered.
    """

    def __init__(self, namespace: str, name: str):
        self.namespace = namespace
        self.name = name
        qualified = f"{namespace}.{name}" if namespace else name
        super().__init__(f"Function {qualified} not found.")


class InvocationError(ToolChatError):
    """
    A resolved function failed while running.
    """

    def __init__(self, message: str, *, namespace: str = "", name: str = ""):
        self.namespace = namespace
        self.name = name
        super().__init__(message)


class MalformedArgumentsError(InvocationError):
    """
    The model's arguments couldn't be parsed, or didn't validate against the
    function's parameters.
    """

    pass


class DuplicateRegistrationError(ToolChatError, ValueError):
    """
    Raised by a strict registry when a (namespace, name) key is registered twice.
    """

    pass


class PluginLoadError(ToolChatError):
    """
    A remote plugin's manifest or API description couldn't be fetched or understood.
    """

    pass
