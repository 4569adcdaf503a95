class NonverbalEngineError(Exception):
    """Base class for errors raised by this package."""


class ConfigError(NonverbalEngineError, ValueError):
    """An EngineConfig / AppConfig value is out of range."""


class ConcurrentStepError(NonverbalEngineError, RuntimeError):
    """process_frame was entered while another call on the same engine was running."""


class TrackerError(NonverbalEngineError, RuntimeError):
    """The face landmark tracker could not be started or failed mid-session."""
