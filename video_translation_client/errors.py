class VideoTranslationError(Exception):
    """Base class for every error raised by the translation client and server"""


class InvalidIdError(VideoTranslationError):
    """A job identifier was missing or empty"""


class DuplicateIdError(VideoTranslationError):
    """A job with the same identifier already exists"""


class NotFoundError(VideoTranslationError):
    """No job is registered under the requested identifier"""


class TranslationError(VideoTranslationError):
    """The translation job itself finished with an error status"""


class TransportError(VideoTranslationError):
    """The status request could not be carried out"""


class ConfigurationError(VideoTranslationError):
    pass


class PollCancelledError(VideoTranslationError):
    pass


class PollTimeoutError(VideoTranslationError, TimeoutError):
    pass
