class TimeboxError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = 500

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(TimeboxError):
    status_code = 404

    def __init__(self, detail: str = "Not found"):
        super().__init__(detail)


class ForbiddenError(TimeboxError):
    status_code = 403

    def __init__(self, detail: str = "Forbidden"):
        super().__init__(detail)


class OutlookNotConnectedError(TimeboxError):
    status_code = 400

    def __init__(self, detail: str = "Outlook not connected or sync disabled"):
        super().__init__(detail)


class OutlookUpstreamError(TimeboxError):
    """Graph or the identity platform refused, or could not be reached."""

    status_code = 500


class BadRequestError(TimeboxError):
    status_code = 400
