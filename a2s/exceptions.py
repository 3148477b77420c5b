class A2SError(Exception):
    """Base exception for server queries."""
    pass
class BrokenMessageError(A2SError):
    """Raised when a server response can not be interpreted."""
    pass
class BufferExhaustedError(BrokenMessageError):
    """Raised when a read goes past the end of the message."""
    def __init__(self, message="Buffer exhausted"):
        super().__init__(message)
class SendError(A2SError):
    """Raised when a request could not be transmitted. The socket is closed afterwards."""
    pass
class ClientClosedError(A2SError):
    """Raised when a closed client or connection is used."""
    pass
