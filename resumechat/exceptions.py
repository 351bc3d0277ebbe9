"""Exception hierarchy for ResumeChat."""


class ResumeChatError(Exception):
    """Base class for all ResumeChat errors."""


class ConfigurationError(ResumeChatError, ValueError):
    """Raised when a setting makes startup impossible (e.g. overlap >= size)."""


class DocumentUnavailable(ResumeChatError):  # noqa: N818
    """Raised when the resume document cannot be retrieved or is empty."""


class EmbeddingFormatError(ResumeChatError, ValueError):
    """Raised when no usable vector can be extracted from an embedding result."""


class GenerationFailure(ResumeChatError):  # noqa: N818
    """Raised when the generation service fails or times out."""


class SessionNotReadyError(ResumeChatError):
    """Raised when a query arrives before the session finished initializing."""


class QueryInProgressError(ResumeChatError):
    """Raised when a query arrives while another one is still being answered."""
