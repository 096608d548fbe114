class LinqException(Exception):
    """
    Base class for every exception raised by linq_tricks.
    """

    def __init__(self, message: str = None):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message or self.__class__.__name__


class LinqValidationException(LinqException):
    pass


class LinqNotSupportedException(LinqException):
    pass


class LinqLimitExceededException(LinqException):
    pass
