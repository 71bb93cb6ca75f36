class CommonError(Exception):
    """Base exception for every domain error raised by the engine"""

    default_message = ""

    def __init__(self, message: str | None = None):
        if message is None:
            message = self.default_message
        super().__init__(message)
