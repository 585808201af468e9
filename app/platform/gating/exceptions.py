"""Script gating errors."""


class GatingError(Exception):
    pass


class DuplicateHandle(GatingError):
    def __init__(self, handle):
        super().__init__(f"Script handle already registered: {handle}")
        self.handle = handle


class UnknownHandle(GatingError):
    def __init__(self, handle):
        super().__init__(f"Script handle not registered: {handle}")
        self.handle = handle


class InvalidDescriptor(GatingError):
    pass
