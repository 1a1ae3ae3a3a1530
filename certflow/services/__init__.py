class ProviderError(Exception):
    """A third-party provider call failed or returned an unusable response."""

    status_code = 502

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details

    def to_dict(self):
        body = {"error": str(self)}
        if self.details is not None:
            body["details"] = self.details
        return body
